import asyncio
import calendar
import inspect
from collections import deque
from datetime import date, datetime, timedelta
from typing import Dict, Iterator, List, Optional

from greenwatt.core.clock import SystemClock
from greenwatt.core.config import settings
from greenwatt.core.logging import get_logger
from greenwatt.models.device import Device
from greenwatt.models.usage import (
    AggregateSnapshot, MetricReading, UsagePeriod, UsageSample
)
from greenwatt.services.device_registry import DeviceRegistry
from greenwatt.services.load_strategies import LoadStrategy, RegistryLoad
from greenwatt.services.trend_classifier import classify_trend, trend_percentage

logger = get_logger(__name__)


def _shift_months(moment: datetime, months: int) -> datetime:
    """Move a datetime by whole months, clamping the day"""
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _month_start(day: date) -> date:
    return day.replace(day=1)


class UsageSeries:
    """Usage chart for one device, bucketed by period, values in kWh per bucket.

    Iterating is lazy and can be repeated; every pass yields the same buckets,
    oldest first.
    """

    # bucket count, step, label format
    BUCKETS = {
        UsagePeriod.DAY: (24, "hours", "%H:%M"),
        UsagePeriod.WEEK: (7, "days", "%b %d"),
        UsagePeriod.MONTH: (30, "days", "%b %d"),
        UsagePeriod.YEAR: (12, "months", "%b %Y"),
    }

    def __init__(self, device: Device, period: UsagePeriod, now: datetime,
                 off_weight: float = settings.OFF_DEVICE_WEIGHT):
        self.device = device
        self.period = UsagePeriod(period)
        self.now = now
        self.weight = 1.0 if device.is_on else off_weight

    def __len__(self) -> int:
        return self.BUCKETS[self.period][0]

    def __iter__(self) -> Iterator[UsageSample]:
        count, step, label_format = self.BUCKETS[self.period]
        value = self._bucket_value() * self.weight
        for offset in range(count - 1, -1, -1):
            if step == "months":
                timestamp = _shift_months(self.now, -offset)
            else:
                timestamp = self.now - timedelta(**{step: offset})
            yield UsageSample(
                timestamp=timestamp,
                value=value,
                label=timestamp.strftime(label_format)
            )

    def _bucket_value(self) -> float:
        if self.period == UsagePeriod.DAY:
            # One hour at the average draw
            return self.device.average_usage / 1000
        if self.period == UsagePeriod.WEEK:
            return self.device.week_usage / 7
        if self.period == UsagePeriod.MONTH:
            return self.device.month_usage / 30
        return self.device.month_usage


class UsageAggregator:
    """Samples the registry each tick and keeps the dashboard aggregates"""

    def __init__(
        self,
        registry: DeviceRegistry,
        load_strategy: Optional[LoadStrategy] = None,
        clock=None,
        interval: float = settings.TICK_INTERVAL_SECONDS,
        buffer_size: int = settings.SAMPLE_BUFFER_SIZE,
        rate: float = settings.KWH_RATE,
        baseline_kw: float = settings.BASELINE_LOAD_KW,
        co2_per_kwh: float = settings.CO2_KG_PER_KWH,
        off_weight: float = settings.OFF_DEVICE_WEIGHT,
        epsilon: float = settings.TREND_EPSILON,
    ):
        if buffer_size < 1:
            raise ValueError("Sample buffer size must be at least 1")
        self.registry = registry
        self.load_strategy = load_strategy or RegistryLoad()
        self.clock = clock or SystemClock()
        self.interval = interval
        self.buffer_size = buffer_size
        self.rate = rate
        self.baseline_kw = baseline_kw
        self.co2_per_kwh = co2_per_kwh
        self.off_weight = off_weight
        self.epsilon = epsilon

        self._samples: deque = deque(maxlen=buffer_size)
        self._daily_kwh: Dict[date, float] = {}
        self._daily_avoided_kwh: Dict[date, float] = {}
        self._previous_load: Optional[float] = None
        self._snapshot = AggregateSnapshot()
        self._tick_lock = asyncio.Lock()
        self.tick_count = 0
        self.dropped_ticks = 0
        self._log = logger.bind(user=registry.user_id)

    @property
    def snapshot(self) -> AggregateSnapshot:
        """Latest aggregates, zeroed and neutral before the first tick"""
        return self._snapshot

    def samples(self) -> List[UsageSample]:
        """Retained samples, oldest first"""
        return list(self._samples)

    async def tick(self) -> Optional[AggregateSnapshot]:
        """Take one sample; returns None when the tick overlapped a running one"""
        if self._tick_lock.locked():
            self.dropped_ticks += 1
            self._log.warning("Dropping overlapping tick", dropped=self.dropped_ticks)
            return None

        async with self._tick_lock:
            now = self.clock.now()
            devices = self.registry.snapshot()
            load = self.load_strategy.read(devices, now)
            if inspect.isawaitable(load):
                load = await load
            self.tick_count += 1
            return self.ingest(load, now)

    def ingest(self, load_kw: float, timestamp: Optional[datetime] = None) -> AggregateSnapshot:
        """Record one load reading in kW and recompute the aggregates"""
        if load_kw < 0:
            raise ValueError(f"Load cannot be negative: {load_kw}")
        timestamp = timestamp or self.clock.now()

        self._samples.append(UsageSample(
            timestamp=timestamp,
            value=load_kw,
            label=timestamp.strftime("%H:%M")
        ))

        hours = self.interval / 3600
        day = timestamp.date()
        self._daily_kwh[day] = self._daily_kwh.get(day, 0.0) + load_kw * hours
        self._daily_avoided_kwh[day] = (
            self._daily_avoided_kwh.get(day, 0.0) + max(0.0, self.baseline_kw - load_kw) * hours
        )
        self._prune_ledger(day)

        self._snapshot = self._compute(load_kw, timestamp)
        self._previous_load = load_kw

        self._log.debug(
            "Tick recorded",
            load_kw=round(load_kw, 3),
            samples=len(self._samples),
            todays_cost=round(self._snapshot.todays_cost.value, 4)
        )
        return self._snapshot

    def todays_cost(self, now: Optional[datetime] = None) -> float:
        """Sum of today's retained sample values times the rate"""
        today = (now or self.clock.now()).date()
        return sum(sample.value for sample in self._samples if sample.timestamp.date() == today) * self.rate

    def monthly_usage(self, now: Optional[datetime] = None) -> float:
        """kWh accumulated over the current calendar month"""
        month = _month_start((now or self.clock.now()).date())
        return sum(kwh for day, kwh in self._daily_kwh.items() if _month_start(day) == month)

    def co2_saved(self, now: Optional[datetime] = None) -> float:
        """kg of CO2 avoided this month against the baseline load"""
        month = _month_start((now or self.clock.now()).date())
        avoided = sum(kwh for day, kwh in self._daily_avoided_kwh.items() if _month_start(day) == month)
        return avoided * self.co2_per_kwh

    def usage_series(self, device: Device, period: UsagePeriod, now: Optional[datetime] = None) -> UsageSeries:
        """Chart series for a device over the given period"""
        return UsageSeries(device, period, now or self.clock.now(), self.off_weight)

    def _average_daily_usage(self, month: date) -> Optional[float]:
        days = [kwh for day, kwh in self._daily_kwh.items() if _month_start(day) == month]
        if not days:
            return None
        return sum(days) / len(days)

    def _compute(self, load_kw: float, now: datetime) -> AggregateSnapshot:
        previous = self._snapshot if self._snapshot.timestamp is not None else None
        cost = self.todays_cost(now)
        monthly = self.monthly_usage(now)
        co2 = self.co2_saved(now)

        this_month = _month_start(now.date())
        last_month = _month_start(this_month - timedelta(days=1))
        current_daily = self._average_daily_usage(this_month)
        previous_daily = self._average_daily_usage(last_month)

        previous_cost = previous.todays_cost.value if previous else None
        previous_co2 = previous.co2_saved.value if previous else None

        return AggregateSnapshot(
            timestamp=now,
            current_usage=self._reading(self._previous_load, load_kw),
            todays_cost=self._reading(previous_cost, cost),
            monthly_usage=MetricReading(
                value=monthly,
                trend=classify_trend(previous_daily, current_daily, self.epsilon),
                change_pct=trend_percentage(previous_daily, current_daily)
            ),
            co2_saved=self._reading(previous_co2, co2),
        )

    def _reading(self, previous: Optional[float], current: float) -> MetricReading:
        return MetricReading(
            value=current,
            trend=classify_trend(previous, current, self.epsilon),
            change_pct=trend_percentage(previous, current)
        )

    def _prune_ledger(self, today: date) -> None:
        # Keep the current and the previous calendar month only
        cutoff = _month_start(_month_start(today) - timedelta(days=1))
        for ledger in (self._daily_kwh, self._daily_avoided_kwh):
            for day in [day for day in ledger if day < cutoff]:
                del ledger[day]
