from .device import (
    Device, DeviceCategory, ConnectionType, DayOfWeek, ScheduleAction,
    ScheduleItem, DeviceSchedule
)
from .usage import (
    UsageSample, UsagePeriod, TrendDirection, MetricReading,
    AggregateSnapshot, RoomBreakdown
)
from .insight import (
    Insight, InsightPriority, InsightRule, QuickAction, TopInsight, TopInsightStatus
)

__all__ = [
    "Device", "DeviceCategory", "ConnectionType", "DayOfWeek", "ScheduleAction",
    "ScheduleItem", "DeviceSchedule",
    "UsageSample", "UsagePeriod", "TrendDirection", "MetricReading",
    "AggregateSnapshot", "RoomBreakdown",
    "Insight", "InsightPriority", "InsightRule", "QuickAction", "TopInsight", "TopInsightStatus",
]
