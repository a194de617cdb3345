import logging
from typing import Dict, List, Optional, Sequence

from greenwatt.core.config import settings
from greenwatt.models.device import Device, DeviceCategory
from greenwatt.models.insight import (
    Insight, InsightRule, QuickAction, TopInsight, TopInsightStatus
)
from greenwatt.services.device_registry import DeviceRegistry
from greenwatt.services.insight_rules import CONDITIONS, DEFAULT_RULES
from greenwatt.services.usage_aggregator import UsageAggregator

logger = logging.getLogger(__name__)

SLEEP_CATEGORIES = {DeviceCategory.LIGHTING, DeviceCategory.ELECTRONICS}
AWAY_KEEP_CATEGORIES = {DeviceCategory.SECURITY, DeviceCategory.APPLIANCES}
OPTIMIZE_RULE_CONDITIONS = {"standby_draw", "above_average"}


def format_savings(amount: float) -> str:
    """Monthly savings as shown on the dashboard"""
    if amount < 1:
        return "<$1/mo"
    return f"${amount:.0f}/mo"


class InsightGenerator:
    """Evaluates the insight rule table against the registry and aggregates"""

    def __init__(
        self,
        registry: DeviceRegistry,
        aggregator: UsageAggregator,
        rules: Optional[Sequence[InsightRule]] = None,
        rate: float = settings.KWH_RATE,
        eco_threshold: int = settings.ECO_EFFICIENCY_THRESHOLD,
    ):
        self.registry = registry
        self.aggregator = aggregator
        self.rules = list(DEFAULT_RULES if rules is None else rules)
        self.rate = rate
        self.eco_threshold = eco_threshold
        self._insights: List[Insight] = []
        self._evaluated = False

    @property
    def insights(self) -> List[Insight]:
        return list(self._insights)

    def evaluate(self) -> List[Insight]:
        """Run every rule and rank the results"""
        devices = self.registry.snapshot()
        snapshot = self.aggregator.snapshot

        insights = []
        for rule in self.rules:
            insights.extend(self._evaluate_rule(rule, devices, snapshot))

        # Stable sort keeps rule order within a priority
        insights.sort(key=lambda insight: insight.priority.rank)
        self._insights = insights
        self._evaluated = True
        logger.debug(f"Generated {len(insights)} insights from {len(self.rules)} rules")
        return list(insights)

    def top_insight(self) -> TopInsight:
        """Highest ranked insight, or an explicit empty or pending result"""
        if not self._evaluated:
            return TopInsight(status=TopInsightStatus.PENDING)
        if not self._insights:
            return TopInsight(status=TopInsightStatus.EMPTY)
        return TopInsight(status=TopInsightStatus.FOUND, insight=self._insights[0])

    @property
    def savings_potential(self) -> float:
        """Estimated monthly savings over all current insights"""
        return round(sum(insight.savings_amount for insight in self._insights), 2)

    def optimization_score(self) -> int:
        devices = self.registry.snapshot()
        if not devices:
            return 75
        return round(sum(device.efficiency_rating for device in devices) / len(devices))

    async def execute_action(self, action: QuickAction) -> List[Device]:
        """Switch off the devices a quick action targets, returns them"""
        action = QuickAction(action)
        targets = self._action_targets(action)

        switched = []
        for device_id in targets:
            switched.append(await self.registry.set_power(device_id, False))
        logger.info(f"Quick action {action.value} switched off {len(switched)} devices")
        if switched:
            self.evaluate()
        return switched

    def _action_targets(self, action: QuickAction) -> List[str]:
        devices = [device for device in self.registry.snapshot() if device.is_on]
        if action == QuickAction.ECO:
            return [device.id for device in devices if device.efficiency_rating < self.eco_threshold]
        if action == QuickAction.SLEEP:
            return [device.id for device in devices if device.category in SLEEP_CATEGORIES]
        if action == QuickAction.AWAY:
            return [device.id for device in devices if device.category not in AWAY_KEEP_CATEGORIES]

        self.evaluate()
        conditions = {rule.id: rule.condition for rule in self.rules}
        flagged: Dict[str, None] = {}
        for insight in self._insights:
            if insight.device_id and conditions.get(insight.rule_id) in OPTIMIZE_RULE_CONDITIONS:
                flagged[insight.device_id] = None
        on_ids = {device.id for device in devices}
        return [device_id for device_id in flagged if device_id in on_ids]

    def _evaluate_rule(self, rule: InsightRule, devices: Sequence[Device], snapshot) -> List[Insight]:
        condition = CONDITIONS.get(rule.condition)
        if condition is None:
            logger.error(f"Insight rule {rule.id} uses unknown condition {rule.condition}")
            return []

        insights = []
        try:
            for match in condition(rule, devices, snapshot, self.rate):
                amount = round(float(match.get("savings_kwh", 0.0)) * self.rate, 2)
                insights.append(Insight(
                    rule_id=rule.id,
                    message=rule.message.format(**match),
                    priority=rule.priority,
                    savings=format_savings(amount),
                    savings_amount=max(0.0, amount),
                    category=rule.category,
                    device_id=match.get("device_id"),
                ))
        except (KeyError, ValueError) as e:
            logger.error(f"Insight rule {rule.id} is misconfigured: {e}")
            return []
        return insights
