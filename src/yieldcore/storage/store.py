"""Durable store for the last-known-good rate table.

RateStore is the interface RateCache depends on. SqliteRateStore keeps one
row per asset plus a single fetch_state row, written in one transaction so
a restart never reloads a half-saved table.

CRITICAL: Prices are stored as TEXT and restored as Decimal on read.
"""

from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation

from yieldcore.exceptions import YieldCoreError
from yieldcore.logging import get_logger
from yieldcore.models import AssetSymbol, RateSnapshot, RateTable
from yieldcore.storage.database import RatesDatabase

logger = get_logger(__name__)


class RateStore(ABC):
    """Persists rate tables across restarts."""

    @abstractmethod
    async def load_last_known(self) -> RateTable | None:
        """Return the last saved table, or None if nothing usable is stored."""
        ...

    @abstractmethod
    async def save(self, table: RateTable) -> None:
        """Persist a complete table. May raise; callers treat saving as best-effort."""
        ...


class SqliteRateStore(RateStore):
    """aiosqlite-backed RateStore.

    Args:
        database: A RatesDatabase; connected lazily on first use if needed.
    """

    def __init__(self, database: RatesDatabase) -> None:
        self._database = database

    async def _db(self):  # type: ignore[no-untyped-def]
        if not self._database.is_connected:
            await self._database.connect()
        return self._database.db

    async def save(self, table: RateTable) -> None:
        db = await self._db()
        rows = [
            (
                snapshot.symbol.value,
                str(snapshot.price),
                str(snapshot.change_24h),
                snapshot.last_updated,
            )
            for snapshot in table.snapshots.values()
        ]
        await db.executemany(
            """
            INSERT INTO rates_cache (symbol, price_usd, change_24h, last_updated)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(symbol) DO UPDATE SET
                price_usd = excluded.price_usd,
                change_24h = excluded.change_24h,
                last_updated = excluded.last_updated
            """,
            rows,
        )
        await db.execute(
            """
            INSERT INTO fetch_state (id, last_fetch) VALUES (1, ?)
            ON CONFLICT(id) DO UPDATE SET last_fetch = excluded.last_fetch
            """,
            (table.last_fetch,),
        )
        await db.commit()
        logger.debug("rates_saved", count=len(rows), last_fetch=table.last_fetch)

    async def load_last_known(self) -> RateTable | None:
        db = await self._db()
        cursor = await db.execute("SELECT last_fetch FROM fetch_state WHERE id = 1")
        state = await cursor.fetchone()
        if state is None:
            return None

        cursor = await db.execute(
            "SELECT symbol, price_usd, change_24h, last_updated FROM rates_cache"
        )
        rows = await cursor.fetchall()

        snapshots: dict[AssetSymbol, RateSnapshot] = {}
        for symbol_raw, price_raw, change_raw, last_updated in rows:
            try:
                symbol = AssetSymbol(symbol_raw)
                snapshots[symbol] = RateSnapshot(
                    symbol=symbol,
                    price=Decimal(price_raw),
                    change_24h=Decimal(change_raw),
                    last_updated=float(last_updated),
                )
            except (ValueError, InvalidOperation, YieldCoreError):
                logger.warning("stored_rate_invalid", symbol=symbol_raw, price=price_raw)

        try:
            return RateTable(snapshots=snapshots, last_fetch=float(state[0]))
        except YieldCoreError:
            logger.warning("stored_rate_table_incomplete", count=len(snapshots))
            return None
