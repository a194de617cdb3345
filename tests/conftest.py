import pytest

from greenwatt.core.clock import ManualClock
from greenwatt.services.device_registry import DeviceRegistry
from greenwatt.services.load_strategies import RegistryLoad
from greenwatt.services.usage_aggregator import UsageAggregator
from tests.mocks.mock_devices import START, RecordingSleep
from tests.mocks.mock_store import FlakyDeviceStore


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def store():
    return FlakyDeviceStore()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def registry(store, clock, sleep):
    return DeviceRegistry(
        store,
        "user-1",
        clock=clock,
        favorites_limit=8,
        sync_attempts=3,
        sync_backoff=0.5,
        sleep=sleep
    )


@pytest.fixture
def aggregator(registry, clock):
    return UsageAggregator(
        registry,
        load_strategy=RegistryLoad(),
        clock=clock,
        interval=3600,
        buffer_size=3,
        rate=0.12,
        baseline_kw=3.0,
        co2_per_kwh=0.4,
        off_weight=0.3
    )
