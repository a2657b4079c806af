"""Tests for RatesDatabase and SqliteRateStore against a temporary SQLite file."""

from decimal import Decimal

import pytest

from yieldcore.models import AssetSymbol, RateSnapshot
from yieldcore.storage.database import SCHEMA_VERSION, RatesDatabase
from yieldcore.storage.store import SqliteRateStore


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "nested" / "rates.db")


class TestRatesDatabase:
    @pytest.mark.asyncio
    async def test_connect_creates_schema(self, db_path: str) -> None:
        async with RatesDatabase(db_path) as database:
            assert database.is_connected
            cursor = await database.db.execute("SELECT version FROM schema_version")
            assert await cursor.fetchone() == (SCHEMA_VERSION,)
        assert not database.is_connected

    def test_db_before_connect(self) -> None:
        with pytest.raises(RuntimeError):
            RatesDatabase(":memory:").db

    @pytest.mark.asyncio
    async def test_reconnect_keeps_single_version_row(self, db_path: str) -> None:
        async with RatesDatabase(db_path):
            pass
        async with RatesDatabase(db_path) as database:
            cursor = await database.db.execute("SELECT COUNT(*) FROM schema_version")
            assert await cursor.fetchone() == (1,)


class TestSqliteRateStore:
    @pytest.mark.asyncio
    async def test_empty_store(self, db_path: str) -> None:
        async with RatesDatabase(db_path) as database:
            assert await SqliteRateStore(database).load_last_known() is None

    @pytest.mark.asyncio
    async def test_save_and_load_preserves_decimals(self, db_path, sample_table) -> None:
        async with RatesDatabase(db_path) as database:
            await SqliteRateStore(database).save(sample_table)

        # Fresh connection, as after a restart
        async with RatesDatabase(db_path) as database:
            loaded = await SqliteRateStore(database).load_last_known()

        assert loaded is not None
        assert loaded.last_fetch == sample_table.last_fetch
        assert dict(loaded.snapshots) == dict(sample_table.snapshots)
        assert str(loaded.price(AssetSymbol.ETH)) == "2650.50"

    @pytest.mark.asyncio
    async def test_save_overwrites(self, db_path, sample_table) -> None:
        newer = sample_table.with_snapshot(
            RateSnapshot(AssetSymbol.BTC, Decimal("50000"), Decimal("1"), 5.0)
        )
        async with RatesDatabase(db_path) as database:
            store = SqliteRateStore(database)
            await store.save(sample_table)
            await store.save(newer)
            loaded = await store.load_last_known()
            cursor = await database.db.execute("SELECT COUNT(*) FROM rates_cache")
            assert await cursor.fetchone() == (4,)

        assert loaded.price(AssetSymbol.BTC) == Decimal("50000")

    @pytest.mark.asyncio
    async def test_connects_lazily(self, db_path, sample_table) -> None:
        database = RatesDatabase(db_path)
        store = SqliteRateStore(database)
        try:
            await store.save(sample_table)
            assert database.is_connected
        finally:
            await database.close()

    @pytest.mark.asyncio
    async def test_corrupt_row_makes_table_unusable(self, db_path, sample_table) -> None:
        async with RatesDatabase(db_path) as database:
            store = SqliteRateStore(database)
            await store.save(sample_table)
            await database.db.execute(
                "UPDATE rates_cache SET price_usd = 'garbage' WHERE symbol = 'BTC'"
            )
            await database.db.commit()
            assert await store.load_last_known() is None
