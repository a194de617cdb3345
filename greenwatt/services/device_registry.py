import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from greenwatt.core.clock import SystemClock
from greenwatt.core.config import settings
from greenwatt.core.device_store import DeviceChange, DeviceStore
from greenwatt.core.exceptions import (
    InvalidStateError, NotFoundError, StoreRejectedError,
    StoreUnavailableError, SyncFailureError
)
from greenwatt.models.device import Device, DeviceCategory, DeviceSchedule
from greenwatt.models.usage import RoomBreakdown

logger = logging.getLogger(__name__)


# name, room, category, average watts, hours on today, efficiency, on, favorite
DEMO_DEVICES = [
    ("Living Room Light", "Living Room", DeviceCategory.LIGHTING, 60, 5, 88, False, True),
    ("Smart TV", "Living Room", DeviceCategory.ELECTRONICS, 120, 4, 80, False, True),
    ("Air Conditioner", "Living Room", DeviceCategory.COOLING, 2000, 6, 68, False, True),
    ("Kitchen Light", "Kitchen", DeviceCategory.LIGHTING, 60, 3, 90, False, True),
    ("Refrigerator", "Kitchen", DeviceCategory.APPLIANCES, 150, 24, 78, True, False),
    ("Dishwasher", "Kitchen", DeviceCategory.APPLIANCES, 1200, 1, 72, False, False),
    ("Bedroom Light", "Bedroom", DeviceCategory.LIGHTING, 40, 2, 92, False, False),
    ("Smart Heater", "Bedroom", DeviceCategory.HEATING, 1500, 3, 65, False, False),
    ("Desktop Computer", "Office", DeviceCategory.ELECTRONICS, 200, 8, 75, True, False),
    ("Security Camera", "Garage", DeviceCategory.SECURITY, 8, 24, 95, True, False),
]


class DeviceRegistry:
    """In-memory device registry replicated to a device store.

    Devices are immutable; every mutation swaps in a new object so readers can
    take a consistent snapshot without locking. Writers are serialised.
    """

    def __init__(
        self,
        store: DeviceStore,
        user_id: str,
        clock=None,
        favorites_limit: int = settings.FAVORITES_LIMIT,
        sync_attempts: int = settings.SYNC_MAX_ATTEMPTS,
        sync_backoff: float = settings.SYNC_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.user_id = user_id
        self.clock = clock or SystemClock()
        self.favorites_limit = favorites_limit
        self.sync_attempts = max(1, sync_attempts)
        self.sync_backoff = sync_backoff
        self._sleep = sleep
        self._devices: Dict[str, Device] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device_id: str) -> bool:
        return device_id in self._devices

    # Reads

    def get(self, device_id: str) -> Device:
        """Get a device by id"""
        try:
            return self._devices[device_id]
        except KeyError:
            raise NotFoundError(device_id) from None

    def devices(self) -> List[Device]:
        """All devices in registry order"""
        return list(self._devices.values())

    def snapshot(self) -> Tuple[Device, ...]:
        """Consistent copy of the registry for the aggregator"""
        return tuple(self._devices.values())

    def favorites(self) -> List[Device]:
        """Favorite devices in registry order, capped"""
        return [device for device in self._devices.values() if device.is_favorite][:self.favorites_limit]

    def room_breakdown(self, rate: float = settings.KWH_RATE) -> List[RoomBreakdown]:
        """Share of today's usage per room, biggest consumer first"""
        rooms: Dict[str, List[Device]] = {}
        for device in self._devices.values():
            rooms.setdefault(device.room, []).append(device)

        total = sum(device.today_usage for device in self._devices.values())
        breakdown = []
        for room, devices in rooms.items():
            usage = sum(device.today_usage for device in devices)
            breakdown.append(RoomBreakdown(
                room=room,
                usage=round(usage, 3),
                cost=round(usage * rate, 2),
                device_count=len(devices),
                active_devices=sum(1 for device in devices if device.is_on),
                percentage=round(usage / total * 100, 1) if total > 0 else 0.0
            ))
        breakdown.sort(key=lambda room: room.usage, reverse=True)
        return breakdown

    # Mutations

    async def register(self, device: Device) -> Device:
        """Add a device, generating an id when it has none"""
        async with self._lock:
            if device.id is None:
                device = device.model_copy(update={"id": str(uuid.uuid4())})
            elif device.id in self._devices:
                raise InvalidStateError(f"Device {device.id} is already registered")
            device.check_usage_invariant()

            self._devices[device.id] = device

            def rollback():
                self._devices.pop(device.id, None)

            await self._sync(lambda: self.store.save(self.user_id, device), rollback, f"register {device.id}")
            logger.info(f"Registered device {device.id} ({device.name})")
            return device

    async def toggle(self, device_id: str) -> Device:
        """Flip the power state, the draw follows the average usage profile"""
        async with self._lock:
            return await self._flip(device_id)

    async def set_power(self, device_id: str, is_on: bool) -> Device:
        """Toggle only when the device is not already in the wanted state"""
        async with self._lock:
            device = self.get(device_id)
            if device.is_on == is_on:
                return device
            return await self._flip(device_id)

    async def _flip(self, device_id: str) -> Device:
        previous = self.get(device_id)
        if previous.is_on:
            updated = previous.model_copy(update={
                "is_on": False,
                "current_usage": 0.0,
                "last_updated": self.clock.now(),
            })
        else:
            if previous.average_usage <= 0:
                raise InvalidStateError(
                    f"Device {device_id} has no usage profile (average usage {previous.average_usage}W)"
                )
            updated = previous.model_copy(update={
                "is_on": True,
                "current_usage": previous.average_usage,
                "last_updated": self.clock.now(),
            })

        self._devices[device_id] = updated
        await self._sync(
            lambda: self.store.save(self.user_id, updated),
            self._restore(device_id, previous),
            f"toggle {device_id}"
        )
        logger.info(f"Device {device_id} switched {'on' if updated.is_on else 'off'}")
        return updated

    async def update(self, device: Device) -> Device:
        """Replace all fields of a registered device"""
        async with self._lock:
            if device.id is None:
                raise InvalidStateError("Cannot update a device without an id")
            previous = self.get(device.id)
            device.check_usage_invariant()

            self._devices[device.id] = device
            await self._sync(
                lambda: self.store.save(self.user_id, device),
                self._restore(device.id, previous),
                f"update {device.id}"
            )
            return device

    async def set_schedule(self, device_id: str, schedule: Optional[DeviceSchedule]) -> Device:
        """Attach a schedule to a device, None clears it"""
        async with self._lock:
            previous = self.get(device_id)
            updated = previous.model_copy(update={"schedule": schedule, "last_updated": self.clock.now()})

            self._devices[device_id] = updated
            await self._sync(
                lambda: self.store.save(self.user_id, updated),
                self._restore(device_id, previous),
                f"schedule {device_id}"
            )
            return updated

    async def remove(self, device_id: str) -> None:
        """Delete a device"""
        async with self._lock:
            previous = self.get(device_id)
            position = list(self._devices).index(device_id)
            del self._devices[device_id]

            def rollback():
                items = list(self._devices.items())
                items.insert(position, (device_id, previous))
                self._devices = dict(items)

            await self._sync(lambda: self.store.delete(self.user_id, device_id), rollback, f"remove {device_id}")
            logger.info(f"Removed device {device_id}")

    # Replication

    async def load(self) -> int:
        """Replace local state with the store contents"""
        devices = await self.store.load_all(self.user_id)
        async with self._lock:
            self._devices = {device.id: device for device in devices}
        logger.info(f"Loaded {len(devices)} devices for user {self.user_id}")
        return len(devices)

    def apply_remote(self, change: DeviceChange) -> None:
        """Apply a change notification from the store"""
        if change.op == "delete":
            self._devices.pop(change.id, None)
            return

        try:
            device = Device.from_dict(change.device or {}, change.id)
            device.check_usage_invariant()
        except (ValueError, InvalidStateError) as e:
            logger.error(f"Ignoring invalid remote change for device {change.id}: {e}")
            return
        self._devices[change.id] = device

    async def listen(self) -> None:
        """Follow remote changes until cancelled"""
        async for change in self.store.watch(self.user_id):
            logger.debug(f"Remote {change.op} for device {change.id}")
            self.apply_remote(change)

    def needs_demo_seed(self) -> bool:
        """True when empty or holding only part of the demo household"""
        names = {device.name for device in self._devices.values()}
        return names < {row[0] for row in DEMO_DEVICES}

    async def seed_demo(self) -> List[Device]:
        """Populate the demo household, completing an interrupted seed"""
        if not self.needs_demo_seed():
            return []

        present = {device.name for device in self._devices.values()}
        seeded = []
        for name, room, category, watts, hours, efficiency, is_on, favorite in DEMO_DEVICES:
            if name in present:
                continue
            today = watts * hours / 1000
            seeded.append(await self.register(Device(
                name=name,
                room=room,
                category=category,
                is_on=is_on,
                current_usage=watts if is_on else 0.0,
                today_usage=round(today, 3),
                week_usage=round(today * 7, 3),
                month_usage=round(today * 30, 3),
                average_usage=watts,
                peak_usage=round(watts * 1.6, 1),
                estimated_daily_cost=round(today * settings.KWH_RATE, 2),
                efficiency_rating=efficiency,
                on_time_today=hours,
                is_favorite=favorite,
                last_updated=self.clock.now(),
            )))
        logger.info(f"Seeded {len(seeded)} demo devices")
        return seeded

    # Internals

    def _restore(self, device_id: str, previous: Device) -> Callable[[], None]:
        def rollback():
            if device_id in self._devices:
                self._devices[device_id] = previous
        return rollback

    async def _sync(self, write: Callable[[], Awaitable[None]], rollback: Callable[[], None], what: str) -> None:
        """Push a local mutation to the store, retrying transient failures"""
        last_error: Optional[Exception] = None
        for attempt in range(1, self.sync_attempts + 1):
            try:
                await write()
                return
            except StoreRejectedError as e:
                rollback()
                logger.error(f"Store rejected {what}, local change rolled back: {e}")
                raise SyncFailureError(f"Store rejected {what}", rolled_back=True, cause=e) from e
            except StoreUnavailableError as e:
                last_error = e
                if attempt < self.sync_attempts:
                    delay = self.sync_backoff * (2 ** (attempt - 1))
                    logger.warning(f"Store unavailable for {what} (attempt {attempt}/{self.sync_attempts}), retrying in {delay}s")
                    await self._sleep(delay)

        logger.error(f"Giving up on {what} after {self.sync_attempts} attempts: {last_error}")
        raise SyncFailureError(
            f"Store did not confirm {what} after {self.sync_attempts} attempts",
            rolled_back=False,
            cause=last_error
        ) from last_error
