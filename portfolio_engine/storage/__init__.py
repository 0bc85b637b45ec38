"""State Storage Layer.

This layer persists the portfolio registry, allocation ledger, user index and
engine scalars behind a single transactional interface.

Components:
- StateStore: Abstract interface for state persistence
- MemoryStateStore: Dictionary-backed store for tests and ephemeral engines
- SQLiteStateStore: SQLite-backed persistent store
"""

from portfolio_engine.storage.base import StateStore
from portfolio_engine.storage.memory import MemoryStateStore
from portfolio_engine.storage.sqlite_store import SQLiteStateStore

__all__ = [
    "StateStore",
    "MemoryStateStore",
    "SQLiteStateStore",
]
