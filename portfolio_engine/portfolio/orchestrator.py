"""Portfolio orchestrator.

Implements every mutating portfolio operation on top of the registry,
allocation ledger and user index.

Each operation follows the same pattern:
1. Read what it needs and check every precondition
2. Reject with a tagged PortfolioError on the first failing check
3. Apply all writes inside one store transaction

A rejected operation therefore never leaves partial writes behind.
"""

from dataclasses import replace
from typing import TYPE_CHECKING, Optional, Sequence

from portfolio_engine.portfolio.base import AssetAllocation, EngineSettings, Portfolio
from portfolio_engine.portfolio.clock import LogicalClock
from portfolio_engine.portfolio.ledger import AllocationLedger
from portfolio_engine.portfolio.rebalance import RebalanceCalculator
from portfolio_engine.portfolio.registry import PortfolioRegistry
from portfolio_engine.portfolio.user_index import UserPortfolioIndex
from portfolio_engine.portfolio.validation import (
    is_valid_percentage,
    is_valid_percentage_set,
    is_valid_slot_index,
)
from portfolio_engine.utils.exceptions import (
    InvalidPercentageError,
    InvalidPortfolioError,
    InvalidTickError,
    InvalidTokenError,
    InvalidTokenIdError,
    LengthMismatchError,
    MaxSlotsExceededError,
    NotAuthorizedError,
    PortfolioError,
    UserStorageFailedError,
)
from portfolio_engine.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from portfolio_engine.storage.base import StateStore

logger = get_logger(__name__)


class PortfolioOrchestrator:
    """Owner-checked create, update, rebalance and deactivate operations.

    Example:
        >>> orchestrator = PortfolioOrchestrator(MemoryStateStore(), LogicalClock())
        >>> portfolio_id = orchestrator.create_portfolio(
        ...     "alice", ["token-a", "token-b"], [5000, 5000]
        ... )
        >>> orchestrator.rebalance_portfolio("alice", portfolio_id)
        True
    """

    def __init__(
        self,
        store: "StateStore",
        clock: Optional[LogicalClock] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.store = store
        self.clock = clock or LogicalClock()
        self.settings = settings or EngineSettings()

        self.registry = PortfolioRegistry(store)
        self.ledger = AllocationLedger(store)
        self.user_index = UserPortfolioIndex(
            store, capacity=self.settings.max_user_portfolios
        )
        self.calculator = RebalanceCalculator(self.settings.rebalance_threshold)

    def _reject(
        self, error_cls: type, message: str, operation: str, **context
    ) -> PortfolioError:
        log_with_context(
            logger,
            "warning",
            f"{operation} rejected: {message}",
            code=error_cls.code,
            **context,
        )
        return error_cls(message)

    def _load_owned(
        self, caller: str, portfolio_id: int, operation: str
    ) -> Portfolio:
        """Return the portfolio if it exists and ``caller`` owns it."""
        portfolio = self.registry.get(portfolio_id)
        if portfolio is None:
            raise self._reject(
                InvalidPortfolioError,
                f"Portfolio {portfolio_id} does not exist",
                operation,
                portfolio_id=portfolio_id,
            )
        if caller != portfolio.owner:
            raise self._reject(
                NotAuthorizedError,
                f"{caller} does not own portfolio {portfolio_id}",
                operation,
                portfolio_id=portfolio_id,
                caller=caller,
            )
        return portfolio

    def create_portfolio(
        self,
        caller: str,
        tokens: Sequence[str],
        percentages: Sequence[int],
    ) -> int:
        """Create a portfolio owned by ``caller`` and return its id.

        Args:
            caller: Account creating the portfolio; becomes its owner
            tokens: Token references, one per slot
            percentages: Target percentages in basis points, one per token

        Returns:
            The new portfolio id

        Raises:
            MaxSlotsExceededError: More tokens than slots
            LengthMismatchError: tokens and percentages differ in length
            InvalidPercentageError: A percentage is outside [0, 10000]
            InvalidTokenError: Fewer tokens than required, or an empty token
            UserStorageFailedError: The caller's portfolio index is full
        """
        operation = "create_portfolio"
        tokens = list(tokens)
        percentages = list(percentages)
        settings = self.settings

        if len(tokens) > settings.max_slots:
            raise self._reject(
                MaxSlotsExceededError,
                f"{len(tokens)} tokens exceed {settings.max_slots} slots",
                operation,
                caller=caller,
            )
        if len(tokens) != len(percentages):
            raise self._reject(
                LengthMismatchError,
                f"{len(tokens)} tokens but {len(percentages)} percentages",
                operation,
                caller=caller,
            )
        if not is_valid_percentage_set(percentages, settings.max_percentage):
            raise self._reject(
                InvalidPercentageError,
                f"Percentages must be integers in [0, {settings.max_percentage}]",
                operation,
                caller=caller,
            )
        if len(tokens) < settings.min_initial_slots:
            raise self._reject(
                InvalidTokenError,
                f"At least {settings.min_initial_slots} tokens are required, "
                f"got {len(tokens)}",
                operation,
                caller=caller,
            )

        if settings.materialize_all_slots:
            slots = list(range(len(tokens)))
        else:
            slots = list(range(settings.min_initial_slots))

        for slot in slots:
            token = tokens[slot]
            if not isinstance(token, str) or not token:
                raise self._reject(
                    InvalidTokenError,
                    f"Token for slot {slot} is missing",
                    operation,
                    caller=caller,
                )
        if not self.user_index.can_append(caller):
            raise self._reject(
                UserStorageFailedError,
                f"{caller} already owns {self.user_index.capacity} portfolios",
                operation,
                caller=caller,
            )

        now = self.clock.now()
        portfolio_id = self.registry.peek_next_id()
        portfolio = Portfolio(
            owner=caller,
            created_at=now,
            last_rebalanced=now,
            total_value=0,
            active=True,
            slot_count=len(tokens),
        )

        with self.store.transaction():
            self.registry.put(portfolio_id, portfolio)
            for slot in slots:
                self.ledger.put(
                    portfolio_id,
                    slot,
                    AssetAllocation(
                        target_percentage=percentages[slot],
                        token=tokens[slot],
                        current_amount=0,
                    ),
                )
            self.user_index.append(caller, portfolio_id)
            self.registry.commit_id(portfolio_id)

        log_with_context(
            logger,
            "info",
            "Portfolio created",
            portfolio_id=portfolio_id,
            owner=caller,
            slot_count=len(tokens),
            tick=now,
        )
        return portfolio_id

    def rebalance_portfolio(self, caller: str, portfolio_id: int) -> bool:
        """Record that ``portfolio_id`` was rebalanced at the current tick.

        Only the timestamp changes. Allocation amounts are not recomputed
        and no transfers are issued.

        Raises:
            InvalidPortfolioError: Unknown or inactive portfolio
            NotAuthorizedError: Caller is not the owner
            InvalidTickError: Current tick is before the last rebalance
        """
        operation = "rebalance_portfolio"
        portfolio = self._load_owned(caller, portfolio_id, operation)
        if not portfolio.active:
            raise self._reject(
                InvalidPortfolioError,
                f"Portfolio {portfolio_id} is inactive",
                operation,
                portfolio_id=portfolio_id,
            )

        now = self.clock.now()
        if now < portfolio.last_rebalanced:
            raise self._reject(
                InvalidTickError,
                f"Tick {now} is before the last rebalance of portfolio "
                f"{portfolio_id} at tick {portfolio.last_rebalanced}",
                operation,
                portfolio_id=portfolio_id,
            )

        with self.store.transaction():
            self.registry.put(portfolio_id, replace(portfolio, last_rebalanced=now))

        log_with_context(
            logger, "info", "Portfolio rebalanced", portfolio_id=portfolio_id, tick=now
        )
        return True

    def update_portfolio_allocation(
        self,
        caller: str,
        portfolio_id: int,
        slot: int,
        new_percentage: int,
    ) -> bool:
        """Overwrite the target percentage of one slot.

        Token reference and current amount are left untouched.

        Raises:
            InvalidPortfolioError: Unknown portfolio
            NotAuthorizedError: Caller is not the owner
            InvalidPercentageError: new_percentage outside [0, 10000]
            InvalidTokenIdError: Slot is not below the portfolio's slot count
            InvalidTokenError: No allocation is stored for the slot
        """
        operation = "update_portfolio_allocation"
        self._load_owned(caller, portfolio_id, operation)

        if not is_valid_percentage(new_percentage, self.settings.max_percentage):
            raise self._reject(
                InvalidPercentageError,
                f"Percentage {new_percentage!r} is outside "
                f"[0, {self.settings.max_percentage}]",
                operation,
                portfolio_id=portfolio_id,
            )
        if not is_valid_slot_index(
            self.registry, portfolio_id, slot, self.settings.max_slots
        ):
            raise self._reject(
                InvalidTokenIdError,
                f"Slot {slot!r} is out of range for portfolio {portfolio_id}",
                operation,
                portfolio_id=portfolio_id,
            )

        allocation = self.ledger.get(portfolio_id, slot)
        if allocation is None:
            raise self._reject(
                InvalidTokenError,
                f"No allocation stored for slot {slot} of portfolio {portfolio_id}",
                operation,
                portfolio_id=portfolio_id,
            )

        with self.store.transaction():
            self.ledger.put(
                portfolio_id, slot, replace(allocation, target_percentage=new_percentage)
            )

        log_with_context(
            logger,
            "info",
            "Allocation updated",
            portfolio_id=portfolio_id,
            slot=slot,
            old_percentage=allocation.target_percentage,
            new_percentage=new_percentage,
        )
        return True

    def deactivate_portfolio(self, caller: str, portfolio_id: int) -> bool:
        """Mark a portfolio inactive. Inactive portfolios cannot be rebalanced.

        Raises:
            InvalidPortfolioError: Unknown or already inactive portfolio
            NotAuthorizedError: Caller is not the owner
        """
        operation = "deactivate_portfolio"
        portfolio = self._load_owned(caller, portfolio_id, operation)
        if not portfolio.active:
            raise self._reject(
                InvalidPortfolioError,
                f"Portfolio {portfolio_id} is already inactive",
                operation,
                portfolio_id=portfolio_id,
            )

        with self.store.transaction():
            self.registry.put(portfolio_id, replace(portfolio, active=False))

        log_with_context(
            logger, "info", "Portfolio deactivated", portfolio_id=portfolio_id
        )
        return True

    def set_protocol_fee(self, caller: str, fee_bps: int) -> bool:
        """Set the protocol fee. Administrator only.

        Raises:
            NotAuthorizedError: Caller is not the administrator
            InvalidPercentageError: fee_bps outside [0, 10000]
        """
        operation = "set_protocol_fee"
        if caller != self.store.get_admin():
            raise self._reject(
                NotAuthorizedError,
                f"{caller} is not the administrator",
                operation,
                caller=caller,
            )
        if not is_valid_percentage(fee_bps, self.settings.max_percentage):
            raise self._reject(
                InvalidPercentageError,
                f"Fee {fee_bps!r} is outside [0, {self.settings.max_percentage}]",
                operation,
            )

        with self.store.transaction():
            self.store.set_protocol_fee(fee_bps)

        log_with_context(logger, "info", "Protocol fee updated", fee_bps=fee_bps)
        return True
