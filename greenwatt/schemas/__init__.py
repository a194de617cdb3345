from .auth import TokenData
from .devices import DeviceBase, DeviceCreate, DeviceUpdate, UsageSeriesResponse
from .dashboard import (
    SampleSeriesResponse, InsightListResponse, QuickActionResponse, HealthResponse
)

__all__ = [
    # Auth schemas
    "TokenData",

    # Device schemas
    "DeviceBase", "DeviceCreate", "DeviceUpdate", "UsageSeriesResponse",

    # Dashboard schemas
    "SampleSeriesResponse", "InsightListResponse", "QuickActionResponse", "HealthResponse",
]
