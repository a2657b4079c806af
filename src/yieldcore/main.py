"""Entry point for the yield core rate service.

Wires the rate provider, durable store and shared RateCache together and
either serves the JSON API through uvicorn (default) or runs the refresh
loop headless. In API mode the cache lives inside FastAPI's lifespan so
both share one asyncio event loop.

Handles SIGINT/SIGTERM for graceful shutdown in headless mode; uvicorn
installs its own handlers when serving.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. RateProvider (simulated, live or fallback chain)
4. RatesDatabase + SqliteRateStore (when persistence is enabled)
5. RateCache (shared rate table)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from yieldcore.config import AppSettings
from yieldcore.logging import get_logger, setup_logging
from yieldcore.rates.cache import RateCache
from yieldcore.rates.factory import make_rate_provider
from yieldcore.storage.database import RatesDatabase
from yieldcore.storage.store import SqliteRateStore


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the provider, store and cache from settings.

    Nothing is connected or started here; that happens in the lifespan
    (API mode) or run_headless().

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    logger = get_logger("yieldcore.main")

    provider = make_rate_provider(settings)

    database = None
    store = None
    if settings.rates.persist:
        database = RatesDatabase(settings.rates.db_path)
        store = SqliteRateStore(database)
    else:
        logger.info("rate_persistence_disabled")

    rate_cache = RateCache.from_settings(provider, store, settings.rates)

    return {
        "provider": provider,
        "database": database,
        "store": store,
        "rate_cache": rate_cache,
    }


async def _start(components: dict[str, Any], settings: AppSettings) -> None:
    await components["rate_cache"].start(settings.rates.poll_interval_seconds)


async def _shutdown(components: dict[str, Any]) -> None:
    """Stop the cache first so no refresh is using the provider or database."""
    await components["rate_cache"].stop()
    await components["provider"].close()
    if components["database"] is not None:
        await components["database"].close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the rate cache with the API and tear it down on shutdown."""
    logger = get_logger("yieldcore.main")
    settings = app.state.settings
    components = app.state.components

    app.state.rate_cache = components["rate_cache"]

    await _start(components, settings)
    logger.info("lifespan_started", provider=components["provider"].name)

    yield

    await _shutdown(components)
    logger.info("yieldcore_stopped")


async def run_headless(settings: AppSettings, components: dict[str, Any]) -> None:
    """Keep the cache refreshed without serving HTTP until SIGINT/SIGTERM."""
    logger = get_logger("yieldcore.main")
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info(
        "starting_without_api",
        provider=components["provider"].name,
        ttl_seconds=settings.rates.ttl_seconds,
        poll_interval=settings.rates.poll_interval_seconds,
    )

    try:
        await _start(components, settings)
        await stop_event.wait()
        logger.info("graceful_shutdown_signal")
    finally:
        await _shutdown(components)
        logger.info("yieldcore_stopped")


async def run() -> None:
    """Run the rate service.

    When the API is enabled (API_ENABLED=true, the default) the FastAPI app
    is served by uvicorn and the lifespan manages the cache. Otherwise the
    cache refreshes headless.
    """
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level)
    logger = get_logger("yieldcore.main")

    # 3-5. Build components
    components = _build_components(settings)

    if not settings.api.enabled:
        await run_headless(settings, components)
        return

    from yieldcore.api.app import create_api_app

    app = create_api_app(
        lifespan=lifespan,
        min_exchange_value=settings.exchange.min_reference_value,
    )
    app.state.settings = settings
    app.state.components = components

    logger.info(
        "starting_with_api",
        host=settings.api.host,
        port=settings.api.port,
        provider=settings.rates.provider,
    )

    config = uvicorn.Config(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
