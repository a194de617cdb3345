"""Error taxonomy of the energy core.

Routers translate these into HTTP responses; services raise them and never
swallow store failures.
"""

from typing import Optional


class GreenWattError(Exception):
    """Base class for energy core errors"""


class NotFoundError(GreenWattError):
    """An operation referenced an unknown device id"""

    def __init__(self, device_id: str):
        self.device_id = device_id
        super().__init__(f"Device {device_id} not found")


class InvalidStateError(GreenWattError):
    """A device is in a state the requested operation cannot work with"""


class SyncFailureError(GreenWattError):
    """A device store write was not confirmed"""

    def __init__(self, message: str, rolled_back: bool = False, cause: Optional[Exception] = None):
        self.rolled_back = rolled_back
        self.cause = cause
        super().__init__(message)


class StoreRejectedError(GreenWattError):
    """The device store refused a write outright (not retryable)"""


class StoreUnavailableError(GreenWattError):
    """The device store could not be reached (retryable)"""
