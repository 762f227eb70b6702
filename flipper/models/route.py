"""Route plan types supplied per call and never persisted."""

from __future__ import annotations

from dataclasses import dataclass

from flipper.models.accounts import Swap, SwapKind


@dataclass(frozen=True)
class RouteHop:
    """One venue invocation within a route plan.

    The hop's accounts are the window ``accounts[input_index:output_index + 1]``
    of the caller's flat account list: the input token account, then the
    venue's own accounts (its PoolInfo record first), then the output token
    account.

    Attributes:
        swap: Venue type (and direction, for directional venues)
        percent: Share of the amount available at input_index, 1..100
        input_index: Position of the hop's input token account
        output_index: Position of the hop's output token account
    """

    swap: Swap
    percent: int
    input_index: int
    output_index: int

    @classmethod
    def of(
        cls,
        kind: SwapKind,
        input_index: int,
        output_index: int,
        percent: int = 100,
        a_to_b: bool = True,
    ) -> RouteHop:
        """Build a hop from a bare venue kind."""
        return cls(Swap(kind=kind, a_to_b=a_to_b), percent, input_index, output_index)


__all__ = ["RouteHop"]
