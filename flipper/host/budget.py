"""Per-operation compute metering."""

from __future__ import annotations

from flipper.errors import ComputeBudgetExceeded


class ComputeMeter:
    """Counts compute units consumed by one operation.

    Every nested invocation and every token transfer draws from the same
    meter; exhausting it aborts the operation.
    """

    __slots__ = ("limit", "used")

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.used = 0

    @property
    def remaining(self) -> int:
        return self.limit - self.used

    def consume(self, units: int) -> None:
        """Draw units from the budget.

        Raises:
            ComputeBudgetExceeded: If the draw would exceed the limit
        """
        if units > self.remaining:
            raise ComputeBudgetExceeded(
                f"Compute budget exceeded: {self.used} + {units} > {self.limit}"
            )
        self.used += units


__all__ = ["ComputeMeter"]
