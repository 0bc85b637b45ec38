"""Rebalance calculator.

Decides whether a portfolio is due for rebalancing from the ticks elapsed
since its last recorded rebalance. It does not compute trades.
"""

from portfolio_engine.portfolio.base import (
    REBALANCE_THRESHOLD,
    Portfolio,
    RebalanceStatus,
)


class RebalanceCalculator:
    """Read-only rebalance-due check.

    Configuration Parameters:
        threshold: Ticks that must elapse (strictly) before a rebalance is due.
            144 ticks is about 24 hours at one tick per ten minutes.

    Example:
        >>> calculator = RebalanceCalculator(threshold=144)
        >>> calculator.is_due(portfolio, current_tick=portfolio.last_rebalanced + 145)
        True
    """

    def __init__(self, threshold: int = REBALANCE_THRESHOLD):
        if threshold < 0:
            raise ValueError(f"threshold must be >= 0, got {threshold}")
        self.threshold = threshold

    def is_due(self, portfolio: Portfolio, current_tick: int) -> bool:
        return current_tick - portfolio.last_rebalanced > self.threshold

    def status(
        self, portfolio_id: int, portfolio: Portfolio, current_tick: int
    ) -> RebalanceStatus:
        return RebalanceStatus(
            portfolio_id=portfolio_id,
            total_value=portfolio.total_value,
            needs_rebalance=self.is_due(portfolio, current_tick),
        )
