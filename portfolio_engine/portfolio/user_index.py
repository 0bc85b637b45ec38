"""Per-account index of owned portfolio ids."""

from typing import TYPE_CHECKING, List

from portfolio_engine.portfolio.base import MAX_USER_PORTFOLIOS
from portfolio_engine.utils.exceptions import UserStorageFailedError
from portfolio_engine.utils.logging import get_logger

if TYPE_CHECKING:
    from portfolio_engine.storage.base import StateStore

logger = get_logger(__name__)


class UserPortfolioIndex:
    """Bounded, append-only list of portfolio ids per account.

    Example:
        >>> index = UserPortfolioIndex(store, capacity=20)
        >>> index.append("alice", 1)
        >>> index.get("alice")
        [1]
    """

    def __init__(self, store: "StateStore", capacity: int = MAX_USER_PORTFOLIOS):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.store = store
        self.capacity = capacity

    def get(self, account: str) -> List[int]:
        """Portfolio ids of ``account`` in insertion order (empty if none)."""
        return self.store.get_user_portfolios(account)

    def can_append(self, account: str) -> bool:
        return len(self.get(account)) < self.capacity

    def append(self, account: str, portfolio_id: int) -> List[int]:
        """Append ``portfolio_id`` to the account's list and return the new list.

        Raises:
            UserStorageFailedError: If the list already holds ``capacity`` ids
        """
        portfolio_ids = self.get(account)
        if len(portfolio_ids) >= self.capacity:
            logger.warning(
                f"Portfolio index full for {account} ({self.capacity} portfolios)"
            )
            raise UserStorageFailedError(
                f"Account {account} already owns {self.capacity} portfolios"
            )

        portfolio_ids.append(portfolio_id)
        self.store.put_user_portfolios(account, portfolio_ids)
        return portfolio_ids
