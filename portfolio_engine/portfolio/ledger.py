"""Asset allocation ledger: per-portfolio, per-slot allocations."""

from typing import TYPE_CHECKING, Dict, Optional

from portfolio_engine.portfolio.base import AssetAllocation, Portfolio

if TYPE_CHECKING:
    from portfolio_engine.storage.base import StateStore


class AllocationLedger:
    """Keyed access to allocations by (portfolio id, slot).

    The ledger cannot list a portfolio's slots on its own; callers use the
    portfolio's slot count to know which slots to read.
    """

    def __init__(self, store: "StateStore"):
        self.store = store

    def get(self, portfolio_id: int, slot: int) -> Optional[AssetAllocation]:
        return self.store.get_allocation(portfolio_id, slot)

    def put(self, portfolio_id: int, slot: int, allocation: AssetAllocation) -> None:
        self.store.put_allocation(portfolio_id, slot, allocation)

    def allocations_for(
        self, portfolio_id: int, portfolio: Portfolio
    ) -> Dict[int, AssetAllocation]:
        """Return the stored allocations of slots 0..slot_count-1.

        Slots without a stored allocation are left out.
        """
        allocations = {}
        for slot in range(portfolio.slot_count):
            allocation = self.get(portfolio_id, slot)
            if allocation is not None:
                allocations[slot] = allocation
        return allocations
