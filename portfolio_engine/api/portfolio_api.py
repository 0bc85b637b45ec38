"""User-friendly Portfolio API for portfolio state management.

This module provides the public operation surface of the engine: the
owner-checked mutations routed through the orchestrator, and the public
reads served straight from the registry, ledger and user index.
"""

from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd

from portfolio_engine.portfolio.base import (
    AssetAllocation,
    EngineSettings,
    Portfolio,
    RebalanceStatus,
)
from portfolio_engine.portfolio.clock import LogicalClock
from portfolio_engine.portfolio.orchestrator import PortfolioOrchestrator
from portfolio_engine.storage import MemoryStateStore, SQLiteStateStore, StateStore
from portfolio_engine.utils.config import Config
from portfolio_engine.utils.exceptions import ConfigurationError, InvalidPortfolioError
from portfolio_engine.utils.logging import get_logger

logger = get_logger(__name__)

ALLOCATION_COLUMNS = ["token", "target_percentage", "target_weight", "current_amount"]


def build_store(config: Optional[Config], settings: EngineSettings) -> StateStore:
    """Create the state store selected by ``storage.backend``.

    Raises:
        ConfigurationError: If the backend is unknown or has no db_path
    """
    backend = config.get("storage.backend", "memory") if config else "memory"
    backend = str(backend).lower()

    if backend == "memory":
        return MemoryStateStore(
            admin=settings.admin, protocol_fee_bps=settings.protocol_fee_bps
        )
    if backend == "sqlite":
        db_path = config.get("storage.db_path")
        if not db_path:
            raise ConfigurationError("storage.db_path is required for sqlite backend")
        return SQLiteStateStore(
            str(Path(db_path)),
            admin=settings.admin,
            protocol_fee_bps=settings.protocol_fee_bps,
        )

    raise ConfigurationError(f"Unknown storage backend: {backend}")


class PortfolioAPI:
    """High-level API for portfolio state management.

    Every mutating method takes the calling account explicitly. Reads are
    public and never fail for unknown ids (they return None or an empty list),
    except ``calculate_rebalance_amounts`` and ``get_allocation_table``.

    Example:
        >>> from portfolio_engine.api import PortfolioAPI
        >>>
        >>> api = PortfolioAPI()
        >>> portfolio_id = api.create_portfolio(
        ...     "alice", ["token-a", "token-b"], [5000, 5000]
        ... )
        >>> api.get_portfolio(portfolio_id).owner
        'alice'
        >>> _ = api.clock.advance(145)
        >>> api.calculate_rebalance_amounts(portfolio_id).needs_rebalance
        True
    """

    def __init__(
        self,
        store: Optional[StateStore] = None,
        clock: Optional[LogicalClock] = None,
        settings: Optional[EngineSettings] = None,
    ):
        """Initialize PortfolioAPI.

        Args:
            store: StateStore instance (defaults to a new MemoryStateStore)
            clock: LogicalClock instance (defaults to a clock at tick 0)
            settings: EngineSettings instance (defaults to built-in limits)
        """
        self.settings = settings or EngineSettings()
        self.store = store or MemoryStateStore(
            admin=self.settings.admin,
            protocol_fee_bps=self.settings.protocol_fee_bps,
        )
        self.clock = clock or LogicalClock()
        self.orchestrator = PortfolioOrchestrator(self.store, self.clock, self.settings)

        logger.debug(
            "PortfolioAPI initialized with %s", type(self.store).__name__
        )

    @classmethod
    def from_config(
        cls, config: Optional[Config] = None, clock: Optional[LogicalClock] = None
    ) -> "PortfolioAPI":
        """Build settings, store and API from a Config."""
        settings = EngineSettings.from_config(config)
        store = build_store(config, settings)
        return cls(store=store, clock=clock, settings=settings)

    # Mutations

    def create_portfolio(
        self, caller: str, tokens: Sequence[str], percentages: Sequence[int]
    ) -> int:
        return self.orchestrator.create_portfolio(caller, tokens, percentages)

    def rebalance_portfolio(self, caller: str, portfolio_id: int) -> bool:
        return self.orchestrator.rebalance_portfolio(caller, portfolio_id)

    def update_portfolio_allocation(
        self, caller: str, portfolio_id: int, slot: int, new_percentage: int
    ) -> bool:
        return self.orchestrator.update_portfolio_allocation(
            caller, portfolio_id, slot, new_percentage
        )

    def deactivate_portfolio(self, caller: str, portfolio_id: int) -> bool:
        return self.orchestrator.deactivate_portfolio(caller, portfolio_id)

    def set_protocol_fee(self, caller: str, fee_bps: int) -> bool:
        return self.orchestrator.set_protocol_fee(caller, fee_bps)

    # Reads

    def get_portfolio(self, portfolio_id: int) -> Optional[Portfolio]:
        return self.orchestrator.registry.get(portfolio_id)

    def get_portfolio_asset(
        self, portfolio_id: int, slot: int
    ) -> Optional[AssetAllocation]:
        return self.orchestrator.ledger.get(portfolio_id, slot)

    def get_user_portfolios(self, account: str) -> List[int]:
        return self.orchestrator.user_index.get(account)

    def get_protocol_fee(self) -> int:
        return self.store.get_protocol_fee()

    def get_admin(self) -> str:
        return self.store.get_admin()

    def calculate_rebalance_amounts(self, portfolio_id: int) -> RebalanceStatus:
        """Report whether a portfolio is due for rebalancing at the current tick.

        Returns:
            RebalanceStatus with portfolio id, total value and needs_rebalance

        Raises:
            InvalidPortfolioError: If the portfolio does not exist
        """
        portfolio = self.get_portfolio(portfolio_id)
        if portfolio is None:
            raise InvalidPortfolioError(f"Portfolio {portfolio_id} does not exist")

        return self.orchestrator.calculator.status(
            portfolio_id, portfolio, self.clock.now()
        )

    def get_allocation_table(self, portfolio_id: int) -> pd.DataFrame:
        """Get a portfolio's stored allocations as a DataFrame.

        Returns:
            DataFrame indexed by ``slot`` with columns token,
            target_percentage, target_weight and current_amount

        Raises:
            InvalidPortfolioError: If the portfolio does not exist
        """
        portfolio = self.get_portfolio(portfolio_id)
        if portfolio is None:
            raise InvalidPortfolioError(f"Portfolio {portfolio_id} does not exist")

        allocations = self.orchestrator.ledger.allocations_for(portfolio_id, portfolio)
        records = [
            {
                "slot": slot,
                "token": allocation.token,
                "target_percentage": allocation.target_percentage,
                "target_weight": allocation.target_weight,
                "current_amount": allocation.current_amount,
            }
            for slot, allocation in allocations.items()
        ]

        df = pd.DataFrame(records, columns=["slot"] + ALLOCATION_COLUMNS)
        df.set_index("slot", inplace=True)
        return df

    def close(self) -> None:
        self.store.close()
