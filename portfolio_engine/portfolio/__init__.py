"""Portfolio State Layer.

This layer keeps owned portfolios of weighted asset allocations, enforces
their integrity rules and decides when a portfolio is due for rebalancing.

Components:
- Portfolio / AssetAllocation / RebalanceStatus: Stored records and results
- EngineSettings: Limits and defaults
- PortfolioRegistry: Portfolios by id and the id counter
- AllocationLedger: Allocations by (portfolio id, slot)
- UserPortfolioIndex: Bounded list of portfolio ids per account
- RebalanceCalculator: Rebalance-due decision
- PortfolioOrchestrator: Owner-checked mutating operations
- LogicalClock: Tick source for timestamps
"""

from portfolio_engine.portfolio.base import (
    AssetAllocation,
    EngineSettings,
    Portfolio,
    RebalanceStatus,
)
from portfolio_engine.portfolio.clock import LogicalClock
from portfolio_engine.portfolio.ledger import AllocationLedger
from portfolio_engine.portfolio.orchestrator import PortfolioOrchestrator
from portfolio_engine.portfolio.rebalance import RebalanceCalculator
from portfolio_engine.portfolio.registry import PortfolioRegistry
from portfolio_engine.portfolio.user_index import UserPortfolioIndex

__all__ = [
    "Portfolio",
    "AssetAllocation",
    "RebalanceStatus",
    "EngineSettings",
    "LogicalClock",
    "PortfolioRegistry",
    "AllocationLedger",
    "UserPortfolioIndex",
    "RebalanceCalculator",
    "PortfolioOrchestrator",
]
