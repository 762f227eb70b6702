"""Data types for route execution."""

from __future__ import annotations

from dataclasses import dataclass, field

from flipper.adapters.base import SwapResult


@dataclass(frozen=True)
class RouteParams:
    """Caller-supplied amounts and tolerances for one route.

    Attributes:
        in_amount: Amount the route spends
        quoted_out_amount: Output the caller expects; the system never quotes
        slippage_bps: Maximum shortfall below the quote, in basis points
        platform_fee_bps: Share of the output taken as platform fee
    """

    in_amount: int
    quoted_out_amount: int
    slippage_bps: int
    platform_fee_bps: int = 0


@dataclass
class RouteOutcome:
    """Result of a settled route.

    Attributes:
        input_amount: Amount spent from the source vault or escrow
        output_amount: Gross output realized at the destination account
        fee_amount: Platform fee moved out of the destination account
        hops: Per-hop results, in execution order (empty for aggregator routes)
    """

    input_amount: int
    output_amount: int
    fee_amount: int = 0
    hops: list[SwapResult] = field(default_factory=list)

    @property
    def net_amount(self) -> int:
        """Output left after the platform fee."""
        return self.output_amount - self.fee_amount


__all__ = ["RouteParams", "RouteOutcome"]
