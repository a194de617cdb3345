import asyncio
import logging
from typing import Callable, Dict, Optional

from greenwatt.core.config import settings
from greenwatt.core.device_store import DeviceStore
from greenwatt.core.scheduler import TickScheduler
from greenwatt.services.device_registry import DeviceRegistry
from greenwatt.services.insight_generator import InsightGenerator
from greenwatt.services.load_strategies import LoadStrategy, PerturbedLoad, RegistryLoad
from greenwatt.services.usage_aggregator import UsageAggregator

logger = logging.getLogger(__name__)


def default_load_strategy() -> LoadStrategy:
    """Perturbed registry load in demo mode, plain registry load otherwise"""
    if settings.DEMO_MODE:
        return PerturbedLoad()
    return RegistryLoad()


class Household:
    """Registry, aggregator, insights and tick schedule of one user"""

    def __init__(
        self,
        user_id: str,
        store: DeviceStore,
        clock=None,
        load_strategy: Optional[LoadStrategy] = None,
        interval: float = settings.TICK_INTERVAL_SECONDS,
    ):
        self.user_id = user_id
        self.registry = DeviceRegistry(store, user_id, clock=clock)
        self.aggregator = UsageAggregator(
            self.registry,
            load_strategy=load_strategy or default_load_strategy(),
            clock=clock,
            interval=interval
        )
        self.insights = InsightGenerator(self.registry, self.aggregator)
        self.scheduler = TickScheduler(interval, self.tick)
        self._listener: Optional[asyncio.Task] = None

    async def tick(self) -> None:
        """One aggregation cycle followed by a fresh insight evaluation"""
        snapshot = await self.aggregator.tick()
        if snapshot is not None:
            self.insights.evaluate()

    async def start(self, seed_demo: bool = settings.SEED_DEMO_DEVICES, run_schedule: bool = True) -> None:
        await self.registry.load()
        if seed_demo and self.registry.needs_demo_seed():
            await self.registry.seed_demo()
        self.insights.evaluate()

        if run_schedule:
            self.scheduler.start()
        self._listener = asyncio.create_task(self._listen())
        logger.info(f"Household {self.user_id} started with {len(self.registry)} devices")

    async def stop(self) -> None:
        await self.scheduler.stop()
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        logger.info(f"Household {self.user_id} stopped")

    async def _listen(self) -> None:
        try:
            await self.registry.listen()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Remote change listener for {self.user_id} stopped: {e}")


class HouseholdHub:
    """Creates and owns one Household per authenticated user"""

    def __init__(
        self,
        store: DeviceStore,
        clock=None,
        load_strategy_factory: Callable[[], LoadStrategy] = default_load_strategy,
        seed_demo: bool = settings.SEED_DEMO_DEVICES,
        run_schedule: bool = True,
        interval: float = settings.TICK_INTERVAL_SECONDS,
    ):
        self.store = store
        self.clock = clock
        self.load_strategy_factory = load_strategy_factory
        self.seed_demo = seed_demo
        self.run_schedule = run_schedule
        self.interval = interval
        self._households: Dict[str, Household] = {}
        self._lock = asyncio.Lock()

    @property
    def households(self) -> Dict[str, Household]:
        return dict(self._households)

    async def get(self, user_id: str) -> Household:
        """Household of a user, started on first access"""
        household = self._households.get(user_id)
        if household is not None:
            return household

        async with self._lock:
            household = self._households.get(user_id)
            if household is None:
                household = Household(
                    user_id,
                    self.store,
                    clock=self.clock,
                    load_strategy=self.load_strategy_factory(),
                    interval=self.interval
                )
                await household.start(seed_demo=self.seed_demo, run_schedule=self.run_schedule)
                self._households[user_id] = household
            return household

    async def shutdown(self) -> None:
        for household in list(self._households.values()):
            await household.stop()
        self._households.clear()
