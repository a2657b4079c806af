"""Rate provider selection from settings."""

from yieldcore.config import AppSettings
from yieldcore.rates.fallback_provider import FallbackProvider
from yieldcore.rates.provider import RateProvider
from yieldcore.rates.simulated_provider import SimulatedProvider


def make_rate_provider(settings: AppSettings) -> RateProvider:
    """Build the provider named by RATES_PROVIDER.

    - "simulated": random walk, no network.
    - "live": public exchange tickers via ccxt.
    - "fallback": live first, simulated when the exchange fails.
    """
    kind = settings.rates.provider
    if kind == "simulated":
        return SimulatedProvider(seed=settings.simulation.seed)

    # Deferred so the simulated path does not import ccxt
    from yieldcore.rates.live_provider import LiveProvider

    live = LiveProvider(settings.live)
    if kind == "live":
        return live
    if kind == "fallback":
        return FallbackProvider([live, SimulatedProvider(seed=settings.simulation.seed)])
    raise ValueError(f"Unknown rate provider kind '{kind}'")
