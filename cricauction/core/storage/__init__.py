"""
Persistent Storage Module.

Provides the storage contract and two implementations:
- InMemoryStore for tests and simulations
- StorageManager, SQLite-backed (registry, auctions, bids)
"""

from cricauction.core.storage.base import AuctionStore
from cricauction.core.storage.memory import InMemoryStore
from cricauction.core.storage.sqlite_adapter import SQLiteAdapter
from cricauction.core.storage.storage_manager import StorageManager

__all__ = ["AuctionStore", "InMemoryStore", "SQLiteAdapter", "StorageManager"]
