"""Route orchestration: validate, execute, then settle fee and slippage.

The router is shared by every entry point that moves funds through venues:
plain routes, route-and-create-order and limit-order execution, each in a
per-hop-adapter flavor (``run_plan``) and an aggregator flavor
(``run_aggregator``). Entry points own the funds before and after: they
deposit into the source account beforehand and pay out the net amount
afterwards.

Output is always measured as the balance increase of the destination
account, never taken from a venue's own report.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from flipper import state
from flipper.addresses import derive_authority_address
from flipper.errors import ErrorCode, error
from flipper.routing.aggregator import invoke_aggregator, validate_aggregator_call
from flipper.routing.executor import RouteExecutor
from flipper.routing.fees import collect_platform_fee, min_output_after_slippage
from flipper.routing.types import RouteOutcome, RouteParams
from flipper.routing.validator import validate_route_params, validate_route_plan
from flipper.safe_int import S

if TYPE_CHECKING:
    from flipper.adapters.base import SwapResult
    from flipper.host.instruction import AccountMeta
    from flipper.host.ledger import Ledger
    from flipper.models.route import RouteHop

logger = structlog.get_logger()


class Router:
    """Executes route plans end to end inside the caller's transaction."""

    def __init__(self, executor: RouteExecutor | None = None) -> None:
        self.executor = executor or RouteExecutor()

    def run_plan(
        self,
        ledger: Ledger,
        route_plan: list[RouteHop],
        accounts: list[AccountMeta],
        params: RouteParams,
        source: str,
        destination: str,
        fee_account: str | None = None,
    ) -> RouteOutcome:
        """Run a per-hop route from ``source`` to ``destination``.

        Args:
            ledger: Host ledger, inside a transaction
            route_plan: Hops to execute
            accounts: Flat account list the hops index into
            params: Amounts and tolerances
            source: Vault or escrow the first hop must spend from
            destination: Vault or escrow the last hop must write to
            fee_account: Platform fee account (required if a fee is charged)

        Returns:
            RouteOutcome with gross output and fee; the net amount is still
            in ``destination``

        Raises:
            ValidationError: INVALID_VAULT_ADDRESS if the plan does not start
                at ``source`` and end at ``destination``; any plan validation error
            ExecutionError: SLIPPAGE_TOLERANCE_EXCEEDED if the net output is
                below the tolerated floor
        """
        validate_route_params(params)
        layout = validate_route_plan(route_plan, accounts)
        if layout.source != source:
            raise error(ErrorCode.INVALID_VAULT_ADDRESS, "route does not start at the source vault")
        if layout.destination != destination:
            raise error(ErrorCode.INVALID_VAULT_ADDRESS, "route does not end at the destination vault")

        authority = derive_authority_address(ledger.config.program_id)
        registry = state.adapter_registry(ledger)
        before = ledger.token.balance(destination)
        hops = self.executor.execute(
            ledger, registry, route_plan, accounts, layout, params.in_amount, authority
        )
        output = self._measure(ledger, destination, before)
        return self._settle(ledger, params, destination, output, fee_account, authority, hops)

    def run_aggregator(
        self,
        ledger: Ledger,
        program_id: str,
        accounts: list[AccountMeta],
        data: bytes,
        params: RouteParams,
        source: str,
        destination: str,
        fee_account: str | None = None,
    ) -> RouteOutcome:
        """Run a route through the trusted aggregator program.

        Same contract as ``run_plan``; the aggregator replaces the hops.
        """
        validate_route_params(params)
        authority = derive_authority_address(ledger.config.program_id)
        validate_aggregator_call(
            state.vault_authority(ledger), program_id, accounts, data, authority, source, destination
        )
        before = ledger.token.balance(destination)
        invoke_aggregator(ledger, program_id, accounts, data)
        output = self._measure(ledger, destination, before)
        return self._settle(ledger, params, destination, output, fee_account, authority, [])

    @staticmethod
    def _measure(ledger: Ledger, destination: str, before: int) -> int:
        after = ledger.token.balance(destination)
        if after < before:
            raise error(ErrorCode.INVALID_CALCULATION, "destination balance decreased")
        return (S(after) - before).value

    @staticmethod
    def _settle(
        ledger: Ledger,
        params: RouteParams,
        destination: str,
        output: int,
        fee_account: str | None,
        authority: str,
        hops: list[SwapResult],
    ) -> RouteOutcome:
        fee = collect_platform_fee(ledger, destination, fee_account, output, params.platform_fee_bps, authority)
        outcome = RouteOutcome(input_amount=params.in_amount, output_amount=output, fee_amount=fee, hops=hops)
        floor = min_output_after_slippage(params.quoted_out_amount, params.slippage_bps)
        if outcome.net_amount < floor:
            raise error(
                ErrorCode.SLIPPAGE_TOLERANCE_EXCEEDED,
                f"net output {outcome.net_amount} below minimum {floor}",
            )
        logger.info(
            "route_settled",
            input_amount=params.in_amount,
            output_amount=output,
            fee_amount=fee,
            min_output=floor,
            hops=len(hops),
        )
        return outcome


__all__ = ["Router"]
