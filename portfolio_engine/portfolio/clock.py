"""Logical clock used to timestamp portfolio events.

One tick corresponds to one block of the host ledger (about ten minutes).
"""


class LogicalClock:
    """Monotonic tick counter.

    Example:
        >>> clock = LogicalClock(start=100)
        >>> clock.now()
        100
        >>> clock.advance(144)
        244
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError(f"start must be non-negative, got {start}")
        self._tick = start

    def now(self) -> int:
        """Return the current tick."""
        return self._tick

    def advance(self, ticks: int = 1) -> int:
        """Move the clock forward and return the new tick."""
        if ticks < 0:
            raise ValueError(f"ticks must be non-negative, got {ticks}")
        self._tick += ticks
        return self._tick

    def set(self, tick: int) -> None:
        """Jump to ``tick``. The clock never moves backwards."""
        if tick < self._tick:
            raise ValueError(f"clock cannot move backwards from {self._tick} to {tick}")
        self._tick = tick
