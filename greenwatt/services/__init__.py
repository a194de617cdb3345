from .device_registry import DeviceRegistry
from .usage_aggregator import UsageAggregator, UsageSeries
from .insight_generator import InsightGenerator
from .load_strategies import ExternalLoad, LoadStrategy, PerturbedLoad, RegistryLoad
from .trend_classifier import classify_trend

__all__ = [
    "DeviceRegistry",
    "UsageAggregator", "UsageSeries",
    "InsightGenerator",
    "LoadStrategy", "RegistryLoad", "PerturbedLoad", "ExternalLoad",
    "classify_trend",
]
