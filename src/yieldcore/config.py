"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class RateCacheSettings(BaseSettings):
    """Rate cache refresh policy and persistence.

    All fields configurable via RATES_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="RATES_")

    provider: Literal["live", "simulated", "fallback"] = "simulated"
    ttl_seconds: float = 60.0  # table becomes eligible for refresh after this
    stale_threshold_seconds: float = 300.0  # "rates may be outdated" after 5 min
    refresh_timeout_seconds: float = 5.0  # upstream call abandoned after this
    poll_interval_seconds: float = 30.0  # background refresh_if_due() tick
    persist: bool = True
    db_path: str = "data/rates.db"


class LiveProviderSettings(BaseSettings):
    """Public ticker source for the live provider (read-only, no API keys)."""

    model_config = SettingsConfigDict(env_prefix="LIVE_")

    exchange_id: str = "kraken"
    quote_currency: str = "USD"


class SimulationSettings(BaseSettings):
    """Random-walk provider used when no live upstream is configured."""

    model_config = SettingsConfigDict(env_prefix="SIM_")

    seed: int | None = None


class ExchangeRulesSettings(BaseSettings):
    """Client-side rules for the asset exchange preview."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    min_reference_value: Decimal = Decimal("10")  # $10 equivalent minimum


class ApiSettings(BaseSettings):
    """HTTP harness configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    rates: RateCacheSettings = RateCacheSettings()
    live: LiveProviderSettings = LiveProviderSettings()
    simulation: SimulationSettings = SimulationSettings()
    exchange: ExchangeRulesSettings = ExchangeRulesSettings()
    api: ApiSettings = ApiSettings()
