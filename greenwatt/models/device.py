from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, time
from enum import Enum
from typing import List, Optional
import uuid

from greenwatt.core.exceptions import InvalidStateError


class DeviceCategory(str, Enum):
    """Fixed set of device categories used by aggregation and insight rules"""
    LIGHTING = "Lighting"
    HEATING = "Heating"
    COOLING = "Cooling"
    APPLIANCES = "Appliances"
    ELECTRONICS = "Electronics"
    SECURITY = "Security"


class ConnectionType(str, Enum):
    WIFI = "WiFi"
    ZIGBEE = "Zigbee"
    ZWAVE = "Z-Wave"
    BLUETOOTH = "Bluetooth"
    THREAD = "Thread"


class DayOfWeek(str, Enum):
    MONDAY = "Mon"
    TUESDAY = "Tue"
    WEDNESDAY = "Wed"
    THURSDAY = "Thu"
    FRIDAY = "Fri"
    SATURDAY = "Sat"
    SUNDAY = "Sun"


class ScheduleAction(str, Enum):
    TURN_ON = "Turn On"
    TURN_OFF = "Turn Off"
    SET_LEVEL = "Set Level"
    ECO_MODE = "Eco Mode"


class ScheduleItem(BaseModel):
    """One recurring time window of a device schedule"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    days: List[DayOfWeek] = Field(..., min_length=1)
    start_time: time
    end_time: time
    action: ScheduleAction


class DeviceSchedule(BaseModel):
    """Stored schedule of a device, executing it is left to the device hub"""
    model_config = ConfigDict(frozen=True)

    is_enabled: bool = True
    items: List[ScheduleItem] = Field(default_factory=list)


class Device(BaseModel):
    """A controllable smart home load"""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    room: str = Field(..., min_length=1, max_length=255)
    category: DeviceCategory
    is_on: bool = False
    current_usage: float = Field(0.0, ge=0, description="Instantaneous draw in watts")
    today_usage: float = Field(0.0, ge=0, description="Energy used today in kWh")
    week_usage: float = Field(0.0, ge=0, description="Energy used this week in kWh")
    month_usage: float = Field(0.0, ge=0, description="Energy used this month in kWh")
    average_usage: float = Field(0.0, ge=0, description="Average draw in watts while on")
    peak_usage: float = Field(0.0, ge=0, description="Peak draw in watts")
    estimated_daily_cost: float = Field(0.0, ge=0)
    efficiency_rating: int = Field(75, ge=0, le=100)
    on_time_today: float = Field(0.0, ge=0, description="Hours switched on today")
    is_favorite: bool = False
    last_updated: datetime = Field(default_factory=datetime.now)
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    connection_type: ConnectionType = ConnectionType.WIFI
    schedule: Optional[DeviceSchedule] = None

    def __repr__(self) -> str:
        return f"<Device(id={self.id}, name={self.name}, is_on={self.is_on}, current_usage={self.current_usage})>"

    def check_usage_invariant(self) -> None:
        """Raise if the power state and the instantaneous draw disagree"""
        if not self.is_on and self.current_usage != 0:
            raise InvalidStateError(
                f"Device {self.id} is off but reports {self.current_usage}W"
            )
        if self.is_on and self.current_usage <= 0:
            raise InvalidStateError(f"Device {self.id} is on but reports no draw")

    def to_dict(self) -> dict:
        """Convert device to a JSON-ready dictionary"""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict, device_id: Optional[str] = None) -> "Device":
        """Build a device from a stored document, the key wins over an embedded id"""
        if device_id is not None:
            data = {**data, "id": device_id}
        return cls.model_validate(data)
