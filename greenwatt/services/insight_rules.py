"""Insight rule table and the condition kinds it can reference.

Each condition takes a rule and the current device and aggregate state and
yields matches: the fields used to format the rule's message plus the
estimated monthly savings in kWh. New behaviour is added by extending the
table, or by registering a condition kind in ``CONDITIONS``.
"""

from typing import Callable, Dict, Iterable, List, Sequence

from greenwatt.models.device import Device
from greenwatt.models.insight import InsightPriority, InsightRule
from greenwatt.models.usage import AggregateSnapshot

DAYS_PER_MONTH = 30

Match = Dict[str, object]
Condition = Callable[[InsightRule, Sequence[Device], AggregateSnapshot, float], Iterable[Match]]


def _device_fields(device: Device) -> Match:
    return {
        "device_id": device.id,
        "name": device.name,
        "room": device.room,
        "category": device.category.value,
    }


def category_on_time(rule, devices, snapshot, rate):
    """Devices of the target category switched on longer than the threshold"""
    limit = rule.params["hours"]
    for device in devices:
        if rule.target_category and device.category.value != rule.target_category:
            continue
        if device.on_time_today > limit:
            excess = device.on_time_today - limit
            yield {
                **_device_fields(device),
                "hours": device.on_time_today,
                "savings_kwh": excess * device.average_usage / 1000 * DAYS_PER_MONTH,
            }


def standby_draw(rule, devices, snapshot, rate):
    """Devices that are on but only drawing standby power"""
    limit = rule.params["watts"]
    for device in devices:
        if rule.target_category and device.category.value != rule.target_category:
            continue
        if device.is_on and 0 < device.current_usage <= limit:
            yield {
                **_device_fields(device),
                "watts": device.current_usage,
                "savings_kwh": device.current_usage / 1000 * 24 * DAYS_PER_MONTH,
            }


def above_average(rule, devices, snapshot, rate):
    """Devices drawing well above their own average"""
    ratio = rule.params["ratio"]
    for device in devices:
        if not device.is_on or device.average_usage <= 0:
            continue
        if device.current_usage > device.average_usage * ratio:
            excess = device.current_usage - device.average_usage
            yield {
                **_device_fields(device),
                "watts": device.current_usage,
                "percent": (device.current_usage / device.average_usage - 1) * 100,
                "savings_kwh": excess / 1000 * max(device.on_time_today, 1) * DAYS_PER_MONTH,
            }


def low_efficiency(rule, devices, snapshot, rate):
    """Devices rated below the efficiency threshold"""
    threshold = rule.params["rating"]
    for device in devices:
        if device.efficiency_rating < threshold:
            yield {
                **_device_fields(device),
                "rating": device.efficiency_rating,
                "savings_kwh": device.today_usage * (threshold - device.efficiency_rating) / 100 * DAYS_PER_MONTH,
            }


def high_load(rule, devices, snapshot, rate):
    """Household load above the threshold"""
    limit = rule.params["kw"]
    load = snapshot.current_usage.value
    if snapshot.timestamp is not None and load > limit:
        # One peak hour a day shifted off the threshold
        yield {"kw": load, "savings_kwh": (load - limit) * DAYS_PER_MONTH}


def daily_cost(rule, devices, snapshot, rate):
    """Today's cost above the threshold"""
    limit = rule.params["cost"]
    cost = snapshot.todays_cost.value
    if snapshot.timestamp is not None and cost > limit and rate > 0:
        share = rule.params.get("share", 0.2)
        yield {"cost": cost, "savings_kwh": (cost - limit) / rate * share * DAYS_PER_MONTH}


CONDITIONS: Dict[str, Condition] = {
    "category_on_time": category_on_time,
    "standby_draw": standby_draw,
    "above_average": above_average,
    "low_efficiency": low_efficiency,
    "high_load": high_load,
    "daily_cost": daily_cost,
}


DEFAULT_RULES: List[InsightRule] = [
    InsightRule(
        id="cooling-runtime",
        condition="category_on_time",
        target_category="Cooling",
        params={"hours": 5},
        priority=InsightPriority.HIGH,
        category="Cooling",
        message="{name} has run for {hours:.0f} hours today. Consider raising the temperature by 2°F",
    ),
    InsightRule(
        id="heating-runtime",
        condition="category_on_time",
        target_category="Heating",
        params={"hours": 4},
        priority=InsightPriority.HIGH,
        category="Heating",
        message="{name} has run for {hours:.0f} hours today. Lowering the setpoint by 1°C saves energy",
    ),
    InsightRule(
        id="household-peak",
        condition="high_load",
        params={"kw": 3.0},
        priority=InsightPriority.HIGH,
        category="Household",
        message="Household load is {kw:.1f} kW. Stagger high-power appliances to avoid peak pricing",
    ),
    InsightRule(
        id="lighting-runtime",
        condition="category_on_time",
        target_category="Lighting",
        params={"hours": 4},
        priority=InsightPriority.MEDIUM,
        category="Lighting",
        message="{name} in the {room} has been on for {hours:.0f} hours today",
    ),
    InsightRule(
        id="above-average-draw",
        condition="above_average",
        params={"ratio": 1.5},
        priority=InsightPriority.MEDIUM,
        category="Devices",
        message="{name} is drawing {watts:.0f}W, {percent:.0f}% above its average",
    ),
    InsightRule(
        id="daily-cost",
        condition="daily_cost",
        params={"cost": 3.0, "share": 0.2},
        priority=InsightPriority.MEDIUM,
        category="Cost",
        message="Today's energy cost has reached ${cost:.2f}",
    ),
    InsightRule(
        id="standby-draw",
        condition="standby_draw",
        params={"watts": 5},
        priority=InsightPriority.LOW,
        category="Standby",
        message="{name} is idle but still drawing {watts:.1f}W",
    ),
    InsightRule(
        id="low-efficiency",
        condition="low_efficiency",
        params={"rating": 70},
        priority=InsightPriority.LOW,
        category="Efficiency",
        message="{name} has an efficiency rating of {rating}%. An upgrade would pay off",
    ),
]
