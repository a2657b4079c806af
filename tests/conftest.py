"""Shared test fixtures for the rate cache and accrual engine."""

from decimal import Decimal

import pytest

from yieldcore.config import AppSettings, RateCacheSettings, SimulationSettings
from yieldcore.models import AssetSymbol, ProviderQuote, RateTable

# Unix seconds used as "now" unless a test moves the clock.
T0 = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock, injected wherever time.time is expected."""

    def __init__(self, start: float = T0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (simulated provider, no persistence)."""
    return AppSettings(
        log_level="DEBUG",
        rates=RateCacheSettings(provider="simulated", persist=False),
        simulation=SimulationSettings(seed=42),
    )


@pytest.fixture
def sample_quotes() -> dict[AssetSymbol, ProviderQuote]:
    return {
        AssetSymbol.BTC: ProviderQuote(Decimal("43250.75"), Decimal("2.34")),
        AssetSymbol.ETH: ProviderQuote(Decimal("2650.50"), Decimal("-0.87")),
        AssetSymbol.USDT: ProviderQuote(Decimal("1.0001"), Decimal("0.01")),
        AssetSymbol.USDC: ProviderQuote(Decimal("0.9999"), Decimal("-0.01")),
    }


@pytest.fixture
def sample_table(sample_quotes) -> RateTable:
    return RateTable.from_quotes(sample_quotes, fetched_at=T0)
