"""Portfolio registry: keyed store of portfolio metadata and the id counter."""

from typing import TYPE_CHECKING, Optional

from portfolio_engine.portfolio.base import Portfolio

if TYPE_CHECKING:
    from portfolio_engine.storage.base import StateStore


class PortfolioRegistry:
    """Access to portfolios by id and to the global portfolio id counter.

    Ids start at 1, increase by one per successful creation and are never
    reused. Creation reads the candidate id with ``peek_next_id`` and only
    stores it with ``commit_id`` once every other write has succeeded.
    """

    def __init__(self, store: "StateStore"):
        self.store = store

    def get(self, portfolio_id: int) -> Optional[Portfolio]:
        return self.store.get_portfolio(portfolio_id)

    def put(self, portfolio_id: int, portfolio: Portfolio) -> None:
        self.store.put_portfolio(portfolio_id, portfolio)

    def peek_next_id(self) -> int:
        """Return the id the next creation will use, without reserving it."""
        return self.store.get_portfolio_counter() + 1

    def commit_id(self, portfolio_id: int) -> None:
        """Record ``portfolio_id`` as the last id handed out."""
        current = self.store.get_portfolio_counter()
        if portfolio_id <= current:
            raise ValueError(
                f"portfolio id counter cannot move from {current} to {portfolio_id}"
            )
        self.store.set_portfolio_counter(portfolio_id)

    def next_id(self) -> int:
        """Reserve and return the next portfolio id."""
        portfolio_id = self.peek_next_id()
        self.commit_id(portfolio_id)
        return portfolio_id
