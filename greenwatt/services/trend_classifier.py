from typing import Optional

from greenwatt.core.config import settings
from greenwatt.models.usage import TrendDirection


def classify_trend(
    previous: Optional[float],
    current: Optional[float],
    epsilon: float = settings.TREND_EPSILON
) -> TrendDirection:
    """Direction of change between two readings, neutral when either is missing"""
    if previous is None or current is None:
        return TrendDirection.NEUTRAL

    delta = current - previous
    if delta > epsilon:
        return TrendDirection.POSITIVE
    if delta < -epsilon:
        return TrendDirection.NEGATIVE
    return TrendDirection.NEUTRAL


def trend_percentage(previous: Optional[float], current: Optional[float]) -> float:
    """Relative change in percent, 0 when there is no usable previous reading"""
    if previous is None or current is None or previous == 0:
        return 0.0
    return round((current - previous) / abs(previous) * 100, 1)
