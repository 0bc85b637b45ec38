"""Abstract base class for portfolio state stores.

This module defines the StateStore interface that all concrete stores must
implement. A store holds three keyed tables (portfolios by id, allocations by
(portfolio id, slot), portfolio ids by account) and three scalars (portfolio
id counter, protocol fee, administrator).
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import List, Optional

from portfolio_engine.portfolio.base import AssetAllocation, Portfolio


class StateStore(ABC):
    """Abstract interface for portfolio state persistence.

    Stores only persist records; they do not validate business rules.
    Writes made inside ``transaction()`` become visible together or not at all.

    Example:
        >>> store = MemoryStateStore(admin="admin")
        >>> with store.transaction():
        ...     store.put_portfolio(1, portfolio)
        ...     store.set_portfolio_counter(1)
    """

    @abstractmethod
    def get_portfolio(self, portfolio_id: int) -> Optional[Portfolio]:
        """Return a copy of the stored portfolio, or None."""
        pass

    @abstractmethod
    def put_portfolio(self, portfolio_id: int, portfolio: Portfolio) -> None:
        """Insert or replace a portfolio."""
        pass

    @abstractmethod
    def get_allocation(
        self, portfolio_id: int, slot: int
    ) -> Optional[AssetAllocation]:
        """Return a copy of the allocation at (portfolio_id, slot), or None."""
        pass

    @abstractmethod
    def put_allocation(
        self, portfolio_id: int, slot: int, allocation: AssetAllocation
    ) -> None:
        """Insert or replace the allocation at (portfolio_id, slot)."""
        pass

    @abstractmethod
    def get_user_portfolios(self, account: str) -> List[int]:
        """Return the account's portfolio ids in insertion order."""
        pass

    @abstractmethod
    def put_user_portfolios(self, account: str, portfolio_ids: List[int]) -> None:
        """Replace the account's portfolio id list."""
        pass

    @abstractmethod
    def get_portfolio_counter(self) -> int:
        """Return the last portfolio id handed out (0 before any creation)."""
        pass

    @abstractmethod
    def set_portfolio_counter(self, value: int) -> None:
        pass

    @abstractmethod
    def get_protocol_fee(self) -> int:
        pass

    @abstractmethod
    def set_protocol_fee(self, fee_bps: int) -> None:
        pass

    @abstractmethod
    def get_admin(self) -> str:
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Context manager grouping writes into one all-or-nothing unit.

        On exception every write made inside the block is discarded and the
        exception is re-raised.
        """
        pass

    def close(self) -> None:
        """Release resources held by the store."""
        pass
