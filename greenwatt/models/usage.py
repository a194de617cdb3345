from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from enum import Enum
from typing import Optional


class TrendDirection(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class UsagePeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class UsageSample(BaseModel):
    """One timestamped usage reading"""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    value: float = Field(..., ge=0, description="Load in kW, or kWh per bucket in usage charts")
    label: str


class MetricReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float
    trend: TrendDirection = TrendDirection.NEUTRAL
    change_pct: float = 0.0


class AggregateSnapshot(BaseModel):
    """Dashboard aggregates recomputed every tick"""
    model_config = ConfigDict(frozen=True)

    timestamp: Optional[datetime] = None
    current_usage: MetricReading = MetricReading(value=0.0)
    todays_cost: MetricReading = MetricReading(value=0.0)
    monthly_usage: MetricReading = MetricReading(value=0.0)
    co2_saved: MetricReading = MetricReading(value=0.0)


class RoomBreakdown(BaseModel):
    """Per-room share of today's usage"""
    room: str
    usage: float
    cost: float
    device_count: int
    active_devices: int
    percentage: float
