from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from greenwatt.models.device import ConnectionType, Device, DeviceCategory, DeviceSchedule
from greenwatt.models.usage import UsagePeriod, UsageSample


class DeviceBase(BaseModel):
    """Base device schema"""
    name: str = Field(..., min_length=1, max_length=255)
    room: str = Field(..., min_length=1, max_length=255)
    category: DeviceCategory
    average_usage: float = Field(0.0, ge=0, le=50000, description="Average draw in watts (0-50kW max)")
    peak_usage: float = Field(0.0, ge=0, le=50000)
    today_usage: float = Field(0.0, ge=0)
    week_usage: float = Field(0.0, ge=0)
    month_usage: float = Field(0.0, ge=0)
    estimated_daily_cost: float = Field(0.0, ge=0)
    efficiency_rating: int = Field(75, ge=0, le=100)
    on_time_today: float = Field(0.0, ge=0, le=24)
    is_favorite: bool = False
    manufacturer: Optional[str] = Field(None, max_length=255)
    model: Optional[str] = Field(None, max_length=255)
    connection_type: ConnectionType = ConnectionType.WIFI
    schedule: Optional[DeviceSchedule] = None


class DeviceCreate(DeviceBase):
    """Schema for registering a device, new devices start switched off"""
    id: Optional[str] = Field(None, min_length=1, max_length=255)

    def to_device(self, now: datetime) -> Device:
        return Device(**self.model_dump(), is_on=False, current_usage=0.0, last_updated=now)


class DeviceUpdate(DeviceBase):
    """Schema for replacing every field of a device"""
    is_on: bool = False
    current_usage: float = Field(0.0, ge=0, le=50000)

    @field_validator("current_usage")
    @classmethod
    def round_usage(cls, v):
        return round(v, 3)  # Round to 3 decimal places for consistency

    def to_device(self, device_id: str, now: datetime) -> Device:
        return Device(**self.model_dump(), id=device_id, last_updated=now)


class UsageSeriesResponse(BaseModel):
    """Schema for a device usage chart"""
    device_id: str
    period: UsagePeriod
    data_points: List[UsageSample]
