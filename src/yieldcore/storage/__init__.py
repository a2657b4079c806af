"""Durable storage for last-known-good rates."""

from yieldcore.storage.database import RatesDatabase
from yieldcore.storage.store import RateStore, SqliteRateStore

__all__ = ["RateStore", "RatesDatabase", "SqliteRateStore"]
