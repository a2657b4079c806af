"""Tests for asset symbols, rate tables and decimal parsing."""

from decimal import Decimal

import pytest

from yieldcore.exceptions import InvalidAmount, RateUnavailable
from yieldcore.models import (
    FALLBACK_PRICES,
    AssetClass,
    AssetSymbol,
    ProviderQuote,
    RateSnapshot,
    RateTable,
    parse_decimal,
)


class TestAssetSymbol:
    def test_parse_is_case_insensitive(self) -> None:
        assert AssetSymbol.parse(" btc ") is AssetSymbol.BTC
        assert AssetSymbol.parse("Usdc") is AssetSymbol.USDC

    def test_parse_unknown_symbol(self) -> None:
        with pytest.raises(RateUnavailable):
            AssetSymbol.parse("DOGE")

    def test_asset_classes_and_display_decimals(self) -> None:
        assert AssetSymbol.BTC.asset_class is AssetClass.CRYPTO
        assert AssetSymbol.ETH.display_decimals == 8
        assert AssetSymbol.USDT.asset_class is AssetClass.STABLE
        assert AssetSymbol.USDC.display_decimals == 2
        assert AssetSymbol.ETH.display_name == "Ethereum"


class TestProviderQuote:
    def test_float_coerced_through_str(self) -> None:
        quote = ProviderQuote(price=0.1, change_24h=-1.5)  # type: ignore[arg-type]
        assert quote.price == Decimal("0.1")
        assert quote.change_24h == Decimal("-1.5")


class TestRateSnapshot:
    @pytest.mark.parametrize("price", ["0", "-1", "NaN", "Infinity"])
    def test_rejects_non_positive_or_non_finite_price(self, price: str) -> None:
        with pytest.raises(InvalidAmount):
            RateSnapshot(AssetSymbol.BTC, Decimal(price), Decimal("0"), 0.0)

    def test_rejects_non_finite_change(self) -> None:
        with pytest.raises(InvalidAmount):
            RateSnapshot(AssetSymbol.BTC, Decimal("1"), Decimal("NaN"), 0.0)


class TestRateTable:
    def test_fallback_table(self) -> None:
        table = RateTable.fallback()
        assert table.last_fetch == 0.0
        assert table.price("BTC") == Decimal("39875.50")
        assert table.price(AssetSymbol.ETH) == Decimal("2450.75")
        assert {s: table.price(s) for s in AssetSymbol} == dict(FALLBACK_PRICES)

    def test_fallback_carries_default_changes(self) -> None:
        table = RateTable.fallback()
        changes = {s.value: table.get(s).change_24h for s in AssetSymbol}
        assert changes == {
            "BTC": Decimal("2.34"),
            "ETH": Decimal("-0.87"),
            "USDT": Decimal("0.01"),
            "USDC": Decimal("-0.01"),
        }

    def test_incomplete_table_rejected(self, sample_quotes) -> None:
        del sample_quotes[AssetSymbol.USDC]
        with pytest.raises(RateUnavailable, match="USDC"):
            RateTable.from_quotes(sample_quotes, fetched_at=1.0)

    def test_mismatched_key_rejected(self, sample_table) -> None:
        snapshots = dict(sample_table.snapshots)
        snapshots[AssetSymbol.USDT] = snapshots[AssetSymbol.USDC]
        with pytest.raises(RateUnavailable):
            RateTable(snapshots=snapshots, last_fetch=1.0)

    def test_snapshots_are_read_only(self, sample_table) -> None:
        with pytest.raises(TypeError):
            sample_table.snapshots[AssetSymbol.BTC] = None  # type: ignore[index]

    def test_from_quotes_stamps_every_snapshot(self, sample_table) -> None:
        assert all(
            snap.last_updated == sample_table.last_fetch
            for snap in sample_table.snapshots.values()
        )

    def test_with_snapshot_keeps_last_fetch(self, sample_table) -> None:
        snap = RateSnapshot(AssetSymbol.BTC, Decimal("50000"), Decimal("1"), 99.0)
        updated = sample_table.with_snapshot(snap)
        assert updated.price(AssetSymbol.BTC) == Decimal("50000")
        assert updated.last_fetch == sample_table.last_fetch
        # original untouched
        assert sample_table.price(AssetSymbol.BTC) == Decimal("43250.75")


class TestParseDecimal:
    def test_float_goes_through_str(self) -> None:
        assert parse_decimal(0.1) == Decimal("0.1")

    def test_string_input(self) -> None:
        assert parse_decimal(" 12.50 ") == Decimal("12.50")

    @pytest.mark.parametrize("value", ["abc", "NaN", "-Infinity", True, "-1"])
    def test_rejected_values(self, value) -> None:
        with pytest.raises(InvalidAmount):
            parse_decimal(value)

    def test_negative_allowed_when_requested(self) -> None:
        assert parse_decimal("-0.87", allow_negative=True) == Decimal("-0.87")
