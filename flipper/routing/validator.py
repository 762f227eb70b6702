"""Structural validation of route plans.

A plan is a list of hops over one flat account list. Amounts flow between
hops through token accounts, so the validator reasons about account
addresses rather than raw positions (a hop's output account is usually
repeated as the next hop's input account):

- The first hop's input account is the route's source.
- Every later hop draws from the source or from an account an earlier hop
  wrote to, and nothing writes to an account after a hop has drawn from it.
- Hops drawing from the same account split it by percent; the shares must
  total exactly 100.
- Every hop's output is either drawn by a later hop or lands in the final
  account, which is the last hop's output. No funds are stranded.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from flipper.constants import FULL_PERCENT, MAX_PLATFORM_FEE_BPS, MAX_SLIPPAGE_BPS
from flipper.errors import ErrorCode, error
from flipper.host.instruction import AccountMeta
from flipper.models.route import RouteHop
from flipper.routing.types import RouteParams


@dataclass(frozen=True)
class RoutePlanLayout:
    """Accounts a validated plan moves funds between.

    Attributes:
        source: Account the first hop spends from
        destination: Account the last hop's output lands in
        last_draw: For each drawn-from account, the position of the last hop
            drawing from it (that hop takes the remainder)
    """

    source: str
    destination: str
    last_draw: dict[str, int]


def validate_route_params(params: RouteParams) -> None:
    """Check amounts and basis-point bounds.

    Raises:
        ValidationError: INVALID_AMOUNT, INVALID_SLIPPAGE or INVALID_PLATFORM_FEE
    """
    if params.in_amount <= 0:
        raise error(ErrorCode.INVALID_AMOUNT, "input amount must be positive")
    if params.quoted_out_amount < 0:
        raise error(ErrorCode.INVALID_AMOUNT, "quoted output cannot be negative")
    if not 0 <= params.slippage_bps <= MAX_SLIPPAGE_BPS:
        raise error(ErrorCode.INVALID_SLIPPAGE, str(params.slippage_bps))
    if not 0 <= params.platform_fee_bps <= MAX_PLATFORM_FEE_BPS:
        raise error(ErrorCode.INVALID_PLATFORM_FEE, str(params.platform_fee_bps))


def validate_route_plan(route_plan: list[RouteHop], accounts: list[AccountMeta]) -> RoutePlanLayout:
    """Check a plan's indices, percents and fund flow.

    Returns:
        RoutePlanLayout naming the source and destination accounts

    Raises:
        ValidationError: EMPTY_ROUTE, NOT_ENOUGH_PERCENT, INVALID_INPUT_INDEX,
            INVALID_OUTPUT_INDEX or INVALID_ACCOUNT
    """
    if not route_plan:
        raise error(ErrorCode.EMPTY_ROUTE)

    for position, hop in enumerate(route_plan):
        if not 1 <= hop.percent <= FULL_PERCENT:
            raise error(ErrorCode.NOT_ENOUGH_PERCENT, f"hop {position} percent {hop.percent}")
        if not 0 <= hop.input_index < len(accounts):
            raise error(ErrorCode.INVALID_INPUT_INDEX, f"hop {position} input index {hop.input_index}")
        # At least one venue account (the PoolInfo record) sits between input and output
        if not hop.input_index + 1 < hop.output_index < len(accounts):
            raise error(ErrorCode.INVALID_OUTPUT_INDEX, f"hop {position} output index {hop.output_index}")
        for index in (hop.input_index, hop.output_index):
            if not accounts[index].is_writable:
                raise error(ErrorCode.INVALID_ACCOUNT, f"hop {position} token account must be writable")

    source = accounts[route_plan[0].input_index].pubkey
    destination = accounts[route_plan[-1].output_index].pubkey

    funded = {source}
    drawn: set[str] = set()
    shares: dict[str, int] = defaultdict(int)
    last_draw: dict[str, int] = {}
    for position, hop in enumerate(route_plan):
        input_account = accounts[hop.input_index].pubkey
        output_account = accounts[hop.output_index].pubkey
        if input_account not in funded:
            raise error(ErrorCode.INVALID_INPUT_INDEX, f"hop {position} draws from an unfunded account")
        if output_account == input_account or output_account in drawn or output_account == source:
            raise error(ErrorCode.INVALID_OUTPUT_INDEX, f"hop {position} writes to a drawn account")
        drawn.add(input_account)
        shares[input_account] += hop.percent
        last_draw[input_account] = position
        funded.add(output_account)

    for account, total in shares.items():
        if total != FULL_PERCENT:
            raise error(ErrorCode.NOT_ENOUGH_PERCENT, f"{account} split totals {total}")

    for position, hop in enumerate(route_plan):
        output_account = accounts[hop.output_index].pubkey
        if output_account != destination and output_account not in drawn:
            raise error(ErrorCode.INVALID_OUTPUT_INDEX, f"hop {position} output is never spent")

    return RoutePlanLayout(source=source, destination=destination, last_draw=last_draw)


__all__ = ["RoutePlanLayout", "validate_route_params", "validate_route_plan"]
