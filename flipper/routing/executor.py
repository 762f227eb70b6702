"""Hop-by-hop execution of a validated route plan.

For each hop the executor:
1. Resolves the venue type to an enabled registry entry (ADAPTER_DISABLED
   otherwise) and to an adapter strategy (SWAP_NOT_SUPPORTED otherwise)
2. Cuts the hop's window out of the flat account list
3. Sizes the hop's input: percent of what its input account received; the
   last hop drawing from an account takes the remainder so no dust is left
4. Lets the adapter validate its accounts and invoke the venue

There is no per-hop slippage check; only the route's final output is
checked, by the router.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

import structlog

from flipper.adapters.base import AdapterContext, SwapResult
from flipper.adapters.connector import DEFAULT_CONNECTOR, AdapterConnector
from flipper.constants import FULL_PERCENT
from flipper.errors import ErrorCode, error
from flipper.models.accounts import AdapterRegistry
from flipper.routing.validator import RoutePlanLayout
from flipper.safe_int import S

if TYPE_CHECKING:
    from flipper.host.instruction import AccountMeta
    from flipper.host.ledger import Ledger
    from flipper.models.route import RouteHop

logger = structlog.get_logger()


class RouteExecutor:
    """Runs route plans against a ledger through venue adapters."""

    def __init__(self, connector: AdapterConnector = DEFAULT_CONNECTOR) -> None:
        self.connector = connector

    def execute(
        self,
        ledger: Ledger,
        registry: AdapterRegistry,
        route_plan: list[RouteHop],
        accounts: list[AccountMeta],
        layout: RoutePlanLayout,
        amount: int,
        authority: str,
    ) -> list[SwapResult]:
        """Execute every hop, spending ``amount`` from the layout's source.

        Args:
            ledger: Host ledger
            registry: Adapter registry used to resolve venue programs
            route_plan: Hops, already validated against ``accounts``
            accounts: Flat account list
            layout: Result of validating the plan
            amount: Amount available at the source account
            authority: VaultAuthority address owning every hop token account

        Returns:
            Per-hop results in execution order
        """
        received: dict[str, S] = defaultdict(lambda: S(0))
        received[layout.source] = S(amount)
        spent: dict[str, S] = defaultdict(lambda: S(0))
        results: list[SwapResult] = []

        for position, hop in enumerate(route_plan):
            adapter_info = registry.find_adapter(hop.swap.kind)
            if adapter_info is None or not adapter_info.enabled:
                raise error(ErrorCode.ADAPTER_DISABLED, hop.swap.kind.name)
            adapter = self.connector.get(hop.swap.kind)

            input_account = accounts[hop.input_index].pubkey
            output_account = accounts[hop.output_index].pubkey
            self._check_custody(ledger, (input_account, output_account), authority)

            if layout.last_draw[input_account] == position:
                hop_amount = received[input_account] - spent[input_account]
            else:
                hop_amount = received[input_account].mul_div(hop.percent, FULL_PERCENT)
            if not hop_amount:
                raise error(ErrorCode.INVALID_CALCULATION, f"hop {position} input rounds to zero")
            spent[input_account] = spent[input_account] + hop_amount

            ctx = AdapterContext(
                ledger=ledger,
                authority=authority,
                input_account=input_account,
                output_account=output_account,
                accounts=accounts[hop.input_index + 1 : hop.output_index],
                swap=hop.swap,
                program_id=adapter_info.program_id,
            )
            adapter.validate_accounts(ctx)
            result = adapter.execute_swap(ctx, hop_amount.to_u64())
            received[output_account] = received[output_account] + result.output_amount
            results.append(result)

            logger.debug(
                "route_hop_completed",
                hop=position,
                venue=hop.swap.kind.name.lower(),
                amount_in=result.input_amount,
                amount_out=result.output_amount,
            )

        return results

    @staticmethod
    def _check_custody(ledger: Ledger, token_accounts: tuple[str, ...], authority: str) -> None:
        for address in token_accounts:
            if ledger.token.account(address).owner != authority:
                raise error(ErrorCode.INVALID_VAULT_OWNER, address)


__all__ = ["RouteExecutor"]
