"""How the aggregator obtains the household load for a tick.

A strategy's ``read`` may be a plain function or a coroutine; it returns the
total load in kW.
"""

import inspect
import random
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Awaitable, Callable, Optional, Sequence, Union

from greenwatt.core.config import settings
from greenwatt.models.device import Device


def registry_load_kw(devices: Sequence[Device]) -> float:
    """Sum of the draw of all switched-on devices, in kW"""
    return sum(device.current_usage for device in devices if device.is_on) / 1000


class LoadStrategy(ABC):

    @abstractmethod
    def read(self, devices: Sequence[Device], now: datetime) -> Union[float, Awaitable[float]]:
        """Return the current load in kW"""


class RegistryLoad(LoadStrategy):
    """Load derived from the registry alone"""

    def read(self, devices: Sequence[Device], now: datetime) -> float:
        return registry_load_kw(devices)


class PerturbedLoad(LoadStrategy):
    """Registry load with a bounded random perturbation, for demos"""

    def __init__(self, amplitude_kw: float = settings.PERTURBATION_KW, rng: Optional[random.Random] = None):
        self.amplitude_kw = amplitude_kw
        self.rng = rng or random.Random(settings.RANDOM_SEED)

    def read(self, devices: Sequence[Device], now: datetime) -> float:
        variation = self.rng.uniform(-self.amplitude_kw, self.amplitude_kw)
        return max(0.0, registry_load_kw(devices) + variation)


class ExternalLoad(LoadStrategy):
    """Reading from an external meter, falling back when it has none"""

    def __init__(
        self,
        reader: Callable[[], Union[Optional[float], Awaitable[Optional[float]]]],
        fallback: Optional[LoadStrategy] = None
    ):
        self.reader = reader
        self.fallback = fallback or RegistryLoad()

    async def read(self, devices: Sequence[Device], now: datetime) -> float:
        value = self.reader()
        if inspect.isawaitable(value):
            value = await value
        if value is None:
            fallback = self.fallback.read(devices, now)
            if inspect.isawaitable(fallback):
                fallback = await fallback
            return fallback
        if value < 0:
            raise ValueError(f"External load reading cannot be negative: {value}")
        return value
