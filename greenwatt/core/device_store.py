"""Keyed device document store the registry replicates.

Stores raise ``StoreUnavailableError`` for transient failures and
``StoreRejectedError`` when a write is refused outright.
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List, Literal, Optional

from pydantic import BaseModel

from greenwatt.models.device import Device

logger = logging.getLogger(__name__)


class DeviceChange(BaseModel):
    """Change notification published by a device store"""
    op: Literal["upsert", "delete"]
    id: str
    device: Optional[dict] = None
    origin: Optional[str] = None


class DeviceStore(ABC):
    """Per-user keyed document store for devices"""

    def __init__(self):
        self.origin = uuid.uuid4().hex

    @abstractmethod
    async def load_all(self, user_id: str) -> List[Device]:
        """Return the user's devices in insertion order"""

    @abstractmethod
    async def save(self, user_id: str, device: Device) -> None:
        """Create or replace a device document"""

    @abstractmethod
    async def delete(self, user_id: str, device_id: str) -> None:
        """Remove a device document"""

    @abstractmethod
    def watch(self, user_id: str) -> AsyncIterator[DeviceChange]:
        """Yield changes made by other writers"""


class InMemoryDeviceStore(DeviceStore):
    """Process-local store used for demo mode and tests"""

    def __init__(self):
        super().__init__()
        self._documents: Dict[str, Dict[str, dict]] = {}
        self._watchers: Dict[str, List[asyncio.Queue]] = {}

    async def load_all(self, user_id: str) -> List[Device]:
        documents = self._documents.get(user_id, {})
        return [Device.from_dict(data, device_id) for device_id, data in documents.items()]

    async def save(self, user_id: str, device: Device) -> None:
        self._documents.setdefault(user_id, {})[device.id] = device.to_dict()
        self._notify(user_id, DeviceChange(op="upsert", id=device.id, device=device.to_dict(), origin=self.origin))

    async def delete(self, user_id: str, device_id: str) -> None:
        self._documents.get(user_id, {}).pop(device_id, None)
        self._notify(user_id, DeviceChange(op="delete", id=device_id, origin=self.origin))

    async def publish_remote(self, user_id: str, change: DeviceChange) -> None:
        """Apply a change as if another replica had written it"""
        if change.op == "upsert":
            self._documents.setdefault(user_id, {})[change.id] = change.device
        else:
            self._documents.get(user_id, {}).pop(change.id, None)
        self._notify(user_id, change)

    async def watch(self, user_id: str) -> AsyncIterator[DeviceChange]:
        queue: asyncio.Queue = asyncio.Queue()
        self._watchers.setdefault(user_id, []).append(queue)
        try:
            while True:
                change = await queue.get()
                if change.origin == self.origin:
                    continue
                yield change
        finally:
            self._watchers[user_id].remove(queue)

    def _notify(self, user_id: str, change: DeviceChange) -> None:
        for queue in self._watchers.get(user_id, []):
            queue.put_nowait(change)
