"""FastAPI application factory for the rate and accrual JSON API."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from yieldcore.api import routes
from yieldcore.exceptions import RateUnavailable, YieldCoreError
from yieldcore.logging import get_logger

logger = get_logger(__name__)


async def _core_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Validation errors become 4xx JSON; they never reach the server error path."""
    status_code = 404 if isinstance(exc, RateUnavailable) else 400
    logger.info(
        "api_request_rejected",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def create_api_app(
    lifespan: Any = None,
    min_exchange_value: Decimal = Decimal("10"),
) -> FastAPI:
    """Create the JSON API application.

    The RateCache is expected on app.state.rate_cache; main.py sets it
    before serving and tests set it directly.

    Args:
        lifespan: Optional async context manager for startup/shutdown.
        min_exchange_value: Minimum reference-currency value of an exchange.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(title="Yield Core Rates API", lifespan=lifespan)
    app.state.min_exchange_value = min_exchange_value
    app.add_exception_handler(YieldCoreError, _core_error_handler)
    app.include_router(routes.router, prefix="/api")
    return app
