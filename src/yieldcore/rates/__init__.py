"""Market-rate layer -- upstream providers and the shared rate cache."""

from yieldcore.rates.cache import RateCache
from yieldcore.rates.factory import make_rate_provider
from yieldcore.rates.fallback_provider import FallbackProvider
from yieldcore.rates.provider import RateProvider
from yieldcore.rates.simulated_provider import SimulatedProvider

__all__ = [
    "FallbackProvider",
    "RateCache",
    "RateProvider",
    "SimulatedProvider",
    "make_rate_provider",
]
