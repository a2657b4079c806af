"""Process-wide market-rate cache with TTL refresh and staleness detection.

One RateCache is built at startup and handed to every consumer. Reads are
synchronous and never touch the network: they return whatever table is
installed. Refreshes run as a background asyncio task:

- refresh_if_due() starts at most one refresh when the table is older than
  the TTL; callers arriving while it runs get the same task back.
- The upstream call is bounded by a timeout. On timeout, provider error or
  an incomplete batch the installed table is left alone and last_fetch
  does not move.
- On success a complete new RateTable replaces the old one in a single
  reference assignment, then it is persisted best-effort.

Failures never propagate to readers; they show up only as is_stale().
"""

import asyncio
import itertools
import time
from decimal import Decimal
from typing import Any, Callable

import structlog

from yieldcore.config import RateCacheSettings
from yieldcore.exceptions import UpstreamError, UpstreamTimeout, YieldCoreError
from yieldcore.logging import get_logger
from yieldcore.models import (
    SUPPORTED_SYMBOLS,
    AssetSymbol,
    RateSnapshot,
    RateTable,
    parse_decimal,
)
from yieldcore.rates.provider import RateProvider, ensure_complete
from yieldcore.storage.store import RateStore

logger = get_logger(__name__)


class RateCache:
    """Shared cache of the latest RateTable.

    Args:
        provider: Upstream rate source, fetched as one batch per refresh.
        store: Optional durable store used to seed at startup and to save
            each successful refresh.
        ttl_seconds: Age after which the table is eligible for refresh.
        stale_threshold_seconds: Age after which is_stale() reports True.
        refresh_timeout_seconds: Upstream call is abandoned after this.
        clock: Source of "now" in Unix seconds.
    """

    def __init__(
        self,
        provider: RateProvider,
        store: RateStore | None = None,
        *,
        ttl_seconds: float = 60.0,
        stale_threshold_seconds: float = 300.0,
        refresh_timeout_seconds: float = 5.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._store = store
        self._ttl = ttl_seconds
        self._stale_threshold = stale_threshold_seconds
        self._timeout = refresh_timeout_seconds
        self._clock = clock

        self._table = RateTable.fallback()
        self._refresh_task: asyncio.Task[bool] | None = None
        self._refresh_ids = itertools.count(1)
        self._consecutive_failures = 0
        self._last_error: str | None = None

        self._running = False
        self._poll_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(
        cls,
        provider: RateProvider,
        store: RateStore | None,
        settings: RateCacheSettings,
        clock: Callable[[], float] = time.time,
    ) -> "RateCache":
        return cls(
            provider,
            store,
            ttl_seconds=settings.ttl_seconds,
            stale_threshold_seconds=settings.stale_threshold_seconds,
            refresh_timeout_seconds=settings.refresh_timeout_seconds,
            clock=clock,
        )

    # ──────────────────────────────────────────────
    # Reads (synchronous, never block)
    # ──────────────────────────────────────────────

    def get_table(self) -> RateTable:
        """Return the installed table. The object is immutable; hold on to it freely."""
        return self._table

    def get_snapshot(self, symbol: AssetSymbol | str) -> RateSnapshot:
        """Return the latest known snapshot for a symbol.

        Raises:
            RateUnavailable: If the symbol is not supported.
        """
        return self._table.get(symbol)

    @property
    def last_fetch(self) -> float:
        return self._table.last_fetch

    def age_seconds(self) -> float:
        """Seconds since the last successful fetch."""
        return max(0.0, self._clock() - self._table.last_fetch)

    def is_due(self) -> bool:
        return self._clock() - self._table.last_fetch >= self._ttl

    def is_stale(self) -> bool:
        """True when the table is older than the staleness threshold. Advisory only."""
        return self._clock() - self._table.last_fetch > self._stale_threshold

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def get_status(self) -> dict[str, Any]:
        """Cache health for the dashboard's "rates may be outdated" banner."""
        return {
            "provider": self._provider.name,
            "last_fetch": self._table.last_fetch,
            "age_seconds": self.age_seconds(),
            "is_stale": self.is_stale(),
            "refresh_in_flight": self.refresh_in_flight,
            "consecutive_failures": self._consecutive_failures,
            "last_error": self._last_error,
        }

    # ──────────────────────────────────────────────
    # Refresh
    # ──────────────────────────────────────────────

    def refresh_if_due(self) -> asyncio.Task[bool] | None:
        """Schedule a background refresh if the TTL has elapsed.

        Must be called from a running event loop. Returns the in-flight
        refresh task (new or already running), or None when the table is
        still fresh.
        """
        if self.refresh_in_flight:
            return self._refresh_task
        if not self.is_due():
            return None
        return self._start_refresh()

    async def refresh(self) -> bool:
        """Refresh now regardless of TTL, joining any refresh already running.

        Returns True if a new table was installed. Never raises upstream errors.
        """
        if self._refresh_task is not None and not self._refresh_task.done():
            task = self._refresh_task
        else:
            task = self._start_refresh()
        # Shielded so a cancelled caller does not abort the shared refresh.
        return await asyncio.shield(task)

    def _start_refresh(self) -> asyncio.Task[bool]:
        refresh_id = next(self._refresh_ids)
        self._refresh_task = asyncio.create_task(
            self._run_refresh(refresh_id), name=f"rate-refresh-{refresh_id}"
        )
        return self._refresh_task

    async def _run_refresh(self, refresh_id: int) -> bool:
        structlog.contextvars.bind_contextvars(refresh_id=refresh_id)
        try:
            table = await self._fetch_table()
        except UpstreamError as exc:
            self._consecutive_failures += 1
            self._last_error = str(exc)
            logger.warning(
                "rates_refresh_failed",
                error=str(exc),
                timeout=isinstance(exc, UpstreamTimeout),
                consecutive_failures=self._consecutive_failures,
                is_stale=self.is_stale(),
            )
            return False

        if not self._install(table):
            return False

        self._consecutive_failures = 0
        self._last_error = None
        logger.info(
            "rates_refreshed",
            provider=self._provider.name,
            last_fetch=table.last_fetch,
            prices={s.value: str(snap.price) for s, snap in table.snapshots.items()},
        )
        await self._persist(table)
        return True

    async def _fetch_table(self) -> RateTable:
        """Call the provider once and build a complete table.

        Raises:
            UpstreamTimeout: The provider did not answer within the timeout.
            UpstreamError: Any other provider failure or an unusable batch.
        """
        try:
            quotes = await asyncio.wait_for(
                self._provider.fetch_rates(SUPPORTED_SYMBOLS), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            raise UpstreamTimeout(
                f"{self._provider.name} did not respond within {self._timeout}s"
            ) from None
        except UpstreamError:
            raise
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise UpstreamError(f"{self._provider.name} failed: {exc!r}") from exc

        try:
            complete = ensure_complete(self._provider.name, SUPPORTED_SYMBOLS, quotes)
            return RateTable.from_quotes(complete, fetched_at=self._clock())
        except (YieldCoreError, TypeError, AttributeError) as exc:
            # Partial, malformed or non-positive batch: the whole batch is rejected.
            raise UpstreamError(str(exc)) from exc

    def _install(self, table: RateTable) -> bool:
        """Swap in a new table unless it is older than the installed one."""
        if table.last_fetch < self._table.last_fetch:
            logger.warning(
                "rates_discarded_out_of_order",
                incoming=table.last_fetch,
                installed=self._table.last_fetch,
            )
            return False
        self._table = table
        return True

    async def _persist(self, table: RateTable) -> None:
        """Best-effort save. A hung store times out instead of holding the refresh guard."""
        if self._store is None:
            return
        try:
            await asyncio.wait_for(self._store.save(table), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("rate_store_save_timed_out", timeout=self._timeout)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("rate_store_save_failed", exc_info=True)

    # ──────────────────────────────────────────────
    # Admin override
    # ──────────────────────────────────────────────

    async def set_manual_rate(
        self,
        symbol: AssetSymbol | str,
        price: Decimal | str | float,
        change_24h: Decimal | str | float | None = None,
    ) -> RateSnapshot:
        """Replace one asset's rate by hand (admin rates page).

        The override lives until the next successful refresh. last_fetch is
        not advanced: a manual edit is not an upstream fetch.

        Raises:
            RateUnavailable: Unsupported symbol.
            InvalidAmount: Non-positive or non-numeric price.
        """
        resolved = AssetSymbol.parse(symbol)
        if change_24h is None:
            change = self._table.get(resolved).change_24h
        else:
            change = parse_decimal(change_24h, "change_24h", allow_negative=True)
        snapshot = RateSnapshot(
            symbol=resolved,
            price=parse_decimal(price, "price"),
            change_24h=change,
            last_updated=self._clock(),
        )
        self._table = self._table.with_snapshot(snapshot)
        logger.info("manual_rate_set", symbol=resolved.value, price=str(snapshot.price))
        await self._persist(self._table)
        return snapshot

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def load_last_known(self) -> bool:
        """Seed the cache from the durable store. Returns True if a table was loaded."""
        if self._store is None:
            return False
        try:
            table = await self._store.load_last_known()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("rate_store_load_failed", exc_info=True)
            return False
        if table is None:
            logger.info("rate_store_empty_using_fallback")
            return False
        if not self._install(table):
            return False
        logger.info("rates_seeded_from_store", last_fetch=table.last_fetch)
        return True

    async def start(self, poll_interval_seconds: float | None = None) -> None:
        """Seed from the store and optionally poll refresh_if_due() in the background."""
        if self._running:
            logger.warning("rate_cache_already_running")
            return
        self._running = True
        await self.load_last_known()
        if poll_interval_seconds:
            self._poll_task = asyncio.create_task(self._poll_loop(poll_interval_seconds))
        logger.info(
            "rate_cache_started",
            provider=self._provider.name,
            ttl_seconds=self._ttl,
            poll_interval=poll_interval_seconds,
        )

    async def stop(self) -> None:
        """Stop polling and abandon any in-flight refresh."""
        self._running = False
        for task in (self._poll_task, self._refresh_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._poll_task = None
        self._refresh_task = None
        logger.info("rate_cache_stopped")

    async def _poll_loop(self, interval: float) -> None:
        while self._running:
            try:
                task = self.refresh_if_due()
                if task is not None:
                    await asyncio.shield(task)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("rate_cache_poll_error", exc_info=True)
            if self._running:
                await asyncio.sleep(interval)

