"""Validation predicates for percentages, percentage sets and slot indices.

All functions are pure boolean predicates and never raise. Callers turn a
False result into the error that fits their operation.
"""

from typing import Any, Callable, Iterable

from portfolio_engine.portfolio.base import MAX_PERCENTAGE, MAX_SLOTS


def all_satisfy(items: Iterable[Any], predicate: Callable[[Any], bool]) -> bool:
    """True iff every item satisfies ``predicate``. Stops at the first failure."""
    for item in items:
        if not predicate(item):
            return False
    return True


def is_valid_percentage(value: Any, max_percentage: int = MAX_PERCENTAGE) -> bool:
    """True iff ``value`` is an integer number of basis points in [0, max_percentage].

    Booleans are rejected even though ``bool`` subclasses ``int``.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value <= max_percentage


def is_valid_percentage_set(
    percentages: Iterable[Any], max_percentage: int = MAX_PERCENTAGE
) -> bool:
    """True iff each percentage is individually valid.

    The sum of the set is not checked.
    """
    return all_satisfy(
        percentages, lambda p: is_valid_percentage(p, max_percentage)
    )


def is_valid_slot_index(
    registry,
    portfolio_id: int,
    slot_index: Any,
    max_slots: int = MAX_SLOTS,
) -> bool:
    """True iff the portfolio exists and ``slot_index`` addresses an occupied slot.

    Args:
        registry: PortfolioRegistry used to look up the portfolio
        portfolio_id: Portfolio to check against
        slot_index: Candidate slot
        max_slots: Slot capacity of any portfolio
    """
    if isinstance(slot_index, bool) or not isinstance(slot_index, int):
        return False

    portfolio = registry.get(portfolio_id)
    if portfolio is None:
        return False

    return 0 <= slot_index < max_slots and slot_index < portfolio.slot_count
