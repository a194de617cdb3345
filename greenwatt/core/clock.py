"""Clocks used by the aggregator and the tick scheduler."""

from datetime import datetime, timedelta


class SystemClock:
    """Wall clock in local time"""

    def now(self) -> datetime:
        return datetime.now()


class ManualClock:
    """Clock that only moves when told to"""

    def __init__(self, start: datetime):
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        self._now = self._now + timedelta(seconds=seconds)
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value
