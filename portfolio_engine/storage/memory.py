"""In-memory state store.

Keeps every table in plain dictionaries. Used by tests and by engines
that do not need persistence.
"""

import copy
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterator, List, Optional, Tuple

from portfolio_engine.portfolio.base import (
    DEFAULT_ADMIN,
    DEFAULT_PROTOCOL_FEE_BPS,
    AssetAllocation,
    Portfolio,
)
from portfolio_engine.storage.base import StateStore
from portfolio_engine.utils.logging import get_logger

logger = get_logger(__name__)


class MemoryStateStore(StateStore):
    """Dictionary-backed StateStore.

    Records are copied on the way in and on the way out, so callers never
    hold a reference into the store.
    """

    def __init__(
        self,
        admin: str = DEFAULT_ADMIN,
        protocol_fee_bps: int = DEFAULT_PROTOCOL_FEE_BPS,
    ):
        self._portfolios: Dict[int, Portfolio] = {}
        self._allocations: Dict[Tuple[int, int], AssetAllocation] = {}
        self._user_portfolios: Dict[str, List[int]] = {}
        self._counter = 0
        self._protocol_fee = protocol_fee_bps
        self._admin = admin
        self._depth = 0

    def get_portfolio(self, portfolio_id: int) -> Optional[Portfolio]:
        portfolio = self._portfolios.get(portfolio_id)
        return replace(portfolio) if portfolio is not None else None

    def put_portfolio(self, portfolio_id: int, portfolio: Portfolio) -> None:
        self._portfolios[portfolio_id] = replace(portfolio)

    def get_allocation(
        self, portfolio_id: int, slot: int
    ) -> Optional[AssetAllocation]:
        allocation = self._allocations.get((portfolio_id, slot))
        return replace(allocation) if allocation is not None else None

    def put_allocation(
        self, portfolio_id: int, slot: int, allocation: AssetAllocation
    ) -> None:
        self._allocations[(portfolio_id, slot)] = replace(allocation)

    def get_user_portfolios(self, account: str) -> List[int]:
        return list(self._user_portfolios.get(account, []))

    def put_user_portfolios(self, account: str, portfolio_ids: List[int]) -> None:
        self._user_portfolios[account] = list(portfolio_ids)

    def get_portfolio_counter(self) -> int:
        return self._counter

    def set_portfolio_counter(self, value: int) -> None:
        self._counter = value

    def get_protocol_fee(self) -> int:
        return self._protocol_fee

    def set_protocol_fee(self, fee_bps: int) -> None:
        self._protocol_fee = fee_bps

    def get_admin(self) -> str:
        return self._admin

    def _snapshot(self) -> dict:
        return {
            "portfolios": copy.deepcopy(self._portfolios),
            "allocations": copy.deepcopy(self._allocations),
            "user_portfolios": copy.deepcopy(self._user_portfolios),
            "counter": self._counter,
            "protocol_fee": self._protocol_fee,
        }

    def _restore(self, snapshot: dict) -> None:
        self._portfolios = snapshot["portfolios"]
        self._allocations = snapshot["allocations"]
        self._user_portfolios = snapshot["user_portfolios"]
        self._counter = snapshot["counter"]
        self._protocol_fee = snapshot["protocol_fee"]

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Snapshot the tables and restore them if the block raises.

        Nested blocks join the outermost transaction.
        """
        if self._depth > 0:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        snapshot = self._snapshot()
        self._depth = 1
        try:
            yield
        except BaseException:
            self._restore(snapshot)
            logger.debug("Transaction rolled back")
            raise
        finally:
            self._depth = 0
