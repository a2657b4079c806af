"""JSON endpoints over the rate cache, conversion and accrual engines."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from yieldcore.accrual import engine as accrual
from yieldcore.accrual.plans import DEFAULT_PLANS, InvestmentPlan, get_plan
from yieldcore.conversion import engine as conversion
from yieldcore.conversion.formatting import format_asset, format_percent, format_reference
from yieldcore.exceptions import InvalidSubscription
from yieldcore.models import REFERENCE_CURRENCY, AssetSymbol, RateSnapshot
from yieldcore.rates.cache import RateCache

router = APIRouter()


class ManualRateRequest(BaseModel):
    price: Decimal
    change_24h: Decimal | None = None


class PortfolioRequest(BaseModel):
    balances: dict[str, Decimal]


def _decimal_to_str(obj: Any) -> Any:
    """Recursively convert Decimal values to strings for JSON serialization."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {k: _decimal_to_str(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_decimal_to_str(item) for item in obj]
    return obj


def _cache(request: Request) -> RateCache:
    return request.app.state.rate_cache


def _snapshot_payload(snapshot: RateSnapshot) -> dict[str, Any]:
    return {
        "symbol": snapshot.symbol.value,
        "name": snapshot.symbol.display_name,
        "price": snapshot.price,
        "price_display": format_reference(snapshot.price),
        "change_24h": snapshot.change_24h,
        "change_24h_display": format_percent(snapshot.change_24h),
        "last_updated": snapshot.last_updated,
    }


def _plan_payload(plan: InvestmentPlan) -> dict[str, Any]:
    return {
        "name": plan.name,
        "apy_percent": plan.apy_percent,
        "duration_days": plan.duration_days,
        "min_amount": plan.min_amount,
        "max_amount": plan.max_amount,
        "is_active": plan.is_active,
        "description": plan.description,
    }


@router.get("/rates")
async def get_rates(request: Request) -> JSONResponse:
    """Current rates plus cache health. Schedules a refresh if the TTL has passed."""
    cache = _cache(request)
    cache.refresh_if_due()
    table = cache.get_table()
    rates = [_snapshot_payload(table.snapshots[symbol]) for symbol in AssetSymbol]
    return JSONResponse(content=_decimal_to_str({
        "reference_currency": REFERENCE_CURRENCY,
        "rates": rates,
        "status": cache.get_status(),
    }))


@router.post("/rates/refresh")
async def refresh_rates(request: Request) -> JSONResponse:
    """Admin "update all rates": refresh now and report the outcome."""
    cache = _cache(request)
    refreshed = await cache.refresh()
    return JSONResponse(content={"refreshed": refreshed, "status": cache.get_status()})


@router.put("/rates/{symbol}")
async def set_rate(request: Request, symbol: str, body: ManualRateRequest) -> JSONResponse:
    """Admin manual override of one asset's price."""
    snapshot = await _cache(request).set_manual_rate(symbol, body.price, body.change_24h)
    return JSONResponse(content=_decimal_to_str(_snapshot_payload(snapshot)))


@router.get("/convert")
async def convert(
    request: Request,
    amount: str,
    from_symbol: str = Query(alias="from"),
    to_symbol: str = Query(alias="to"),
) -> JSONResponse:
    cache = _cache(request)
    table = cache.get_table()
    converted = conversion.convert(amount, from_symbol, to_symbol, table)
    target = AssetSymbol.parse(to_symbol)
    return JSONResponse(content=_decimal_to_str({
        "amount": amount,
        "from": AssetSymbol.parse(from_symbol).value,
        "to": target.value,
        "converted": converted,
        "converted_display": format_asset(converted, target),
        "rate": conversion.cross_rate(from_symbol, to_symbol, table),
        "rates_stale": cache.is_stale(),
    }))


@router.get("/exchange/quote")
async def exchange_quote(
    request: Request,
    amount: str,
    from_symbol: str = Query(alias="from"),
    to_symbol: str = Query(alias="to"),
) -> JSONResponse:
    cache = _cache(request)
    quote = conversion.quote_exchange(
        amount,
        from_symbol,
        to_symbol,
        cache.get_table(),
        min_reference_value=request.app.state.min_exchange_value,
    )
    return JSONResponse(content=_decimal_to_str({
        "from": quote.from_symbol.value,
        "to": quote.to_symbol.value,
        "amount": quote.amount,
        "converted": quote.converted,
        "converted_display": format_asset(quote.converted, quote.to_symbol),
        "rate": quote.rate,
        "reference_value": quote.reference_value,
        "rates_stale": cache.is_stale(),
    }))


@router.post("/portfolio/value")
async def portfolio_value(request: Request, body: PortfolioRequest) -> JSONResponse:
    table = _cache(request).get_table()
    holdings = {
        AssetSymbol.parse(symbol).value: conversion.reference_value(amount, symbol, table)
        for symbol, amount in body.balances.items()
    }
    total = conversion.portfolio_value(body.balances, table)
    return JSONResponse(content=_decimal_to_str({
        "holdings": holdings,
        "total": total,
        "total_display": format_reference(total),
    }))


@router.get("/accrual")
async def get_accrual(
    principal: str,
    apy: str,
    days: str,
    total_days: str | None = None,
) -> JSONResponse:
    earned = accrual.compute_accrued(principal, apy, days, total_days)
    return JSONResponse(content=_decimal_to_str({
        "earned": earned,
        "earned_display": format_reference(earned),
        "daily_run_rate": accrual.daily_run_rate(principal, apy),
    }))


@router.get("/plans")
async def list_plans() -> JSONResponse:
    return JSONResponse(content=_decimal_to_str([_plan_payload(p) for p in DEFAULT_PLANS]))


@router.get("/plans/{name}/projection")
async def plan_projection(name: str, amount: str) -> JSONResponse:
    try:
        plan = get_plan(name)
    except InvalidSubscription as exc:
        return JSONResponse(status_code=404, content={"error": "UnknownPlan", "detail": str(exc)})
    principal = plan.validate_amount(amount)
    expected = plan.projected_return(principal)
    return JSONResponse(content=_decimal_to_str({
        "plan": _plan_payload(plan),
        "amount": principal,
        "projected_return": expected,
        "projected_total": principal + expected,
        "daily_earning": accrual.daily_run_rate(principal, plan.apy_percent),
    }))
