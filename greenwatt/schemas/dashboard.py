from pydantic import BaseModel, Field
from typing import List
from datetime import datetime

from greenwatt.models.device import Device
from greenwatt.models.insight import Insight, QuickAction
from greenwatt.models.usage import UsageSample


class SampleSeriesResponse(BaseModel):
    """Schema for the rolling usage series"""
    capacity: int
    data_points: List[UsageSample]


class InsightListResponse(BaseModel):
    """Schema for ranked insights"""
    insights: List[Insight]
    savings_potential: float = Field(..., description="Estimated monthly savings in currency units")
    optimization_score: int = Field(..., ge=0, le=100)


class QuickActionResponse(BaseModel):
    """Schema for the result of a quick action"""
    action: QuickAction
    switched_off: List[Device]
    timestamp: datetime


class HealthResponse(BaseModel):
    """Schema for service health"""
    status: str
    service: str
    version: str
    store: str
    devices: int
    ticks: int
    dropped_ticks: int
    scheduler_running: bool
