from greenwatt.core.device_store import InMemoryDeviceStore
from greenwatt.core.exceptions import StoreRejectedError, StoreUnavailableError


class FlakyDeviceStore(InMemoryDeviceStore):
    """In-memory store that fails the next writes on demand"""

    def __init__(self):
        super().__init__()
        self.failures = []
        self.writes = 0
        self.reject_write = None

    def reject_next(self, count=1):
        self.failures.extend([StoreRejectedError("write refused")] * count)

    def drop_next(self, count=1):
        self.failures.extend([StoreUnavailableError("connection lost")] * count)

    def reject_at(self, write):
        """Refuse the write with this 1-based number"""
        self.reject_write = write

    def _maybe_fail(self):
        self.writes += 1
        if self.writes == self.reject_write:
            raise StoreRejectedError("write refused")
        if self.failures:
            raise self.failures.pop(0)

    async def save(self, user_id, device):
        self._maybe_fail()
        await super().save(user_id, device)

    async def delete(self, user_id, device_id):
        self._maybe_fail()
        await super().delete(user_id, device_id)
