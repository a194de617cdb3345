import pytest

from greenwatt.core.exceptions import SyncFailureError
from greenwatt.services.device_registry import DEMO_DEVICES
from greenwatt.services.household import Household
from greenwatt.services.load_strategies import RegistryLoad


async def test_restart_completes_partial_demo_household(store, clock):
    store.reject_at(5)
    first = Household("user-1", store, clock=clock, load_strategy=RegistryLoad())
    with pytest.raises(SyncFailureError):
        await first.start(seed_demo=True, run_schedule=False)
    await first.stop()

    second = Household("user-1", store, clock=clock, load_strategy=RegistryLoad())
    await second.start(seed_demo=True, run_schedule=False)
    try:
        assert len(second.registry) == len(DEMO_DEVICES)
        assert len(await store.load_all("user-1")) == len(DEMO_DEVICES)
    finally:
        await second.stop()


async def test_tick_refreshes_insights(store, clock):
    household = Household("user-1", store, clock=clock, load_strategy=RegistryLoad())
    await household.start(seed_demo=True, run_schedule=False)
    try:
        await household.tick()
        assert household.aggregator.tick_count == 1
        assert household.insights.top_insight()
    finally:
        await household.stop()
