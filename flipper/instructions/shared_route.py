"""Swaps and order fills through the trusted aggregator program.

Same fund flow as the per-hop family; the route itself is one opaque
aggregator call whose account list pins the vault authority, the source
and the destination at fixed positions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from flipper import state
from flipper.addresses import derive_vault_address
from flipper.errors import ErrorCode, error
from flipper.instructions.limit_orders import (
    OrderTerms,
    check_user_account,
    fill_order,
    load_init_order,
    open_order_from_route,
)
from flipper.instructions.route import (
    deposit,
    emit_router_swap,
    pay_out,
    resolve_pair,
    take_profit_terms,
)
from flipper.models.types import normalize_address
from flipper.routing.types import RouteParams
from flipper.routing.validator import validate_route_params

if TYPE_CHECKING:
    from flipper.host.instruction import AccountMeta
    from flipper.host.ledger import Ledger
    from flipper.models.accounts import LimitOrder
    from flipper.routing.router import Router
    from flipper.routing.types import RouteOutcome

logger = structlog.get_logger()


def shared_route(
    ledger: Ledger,
    router: Router,
    user: str,
    user_source_account: str,
    user_destination_account: str,
    aggregator_program_id: str,
    accounts: list[AccountMeta],
    data: bytes,
    params: RouteParams,
    platform_fee_account: str | None = None,
) -> RouteOutcome:
    """Swap through the aggregator and pay the net output to the user."""
    ledger.require_signer(user)
    validate_route_params(params)
    state.vault_authority(ledger)
    source_mint, destination_mint = resolve_pair(ledger, user_source_account, user_destination_account)
    source_vault = deposit(ledger, user, user_source_account, source_mint, params.in_amount)
    destination_vault = derive_vault_address(destination_mint, ledger.config.program_id)

    outcome = router.run_aggregator(
        ledger,
        normalize_address(aggregator_program_id),
        accounts,
        data,
        params,
        source_vault,
        destination_vault,
        platform_fee_account,
    )
    pay_out(ledger, destination_vault, user_destination_account, outcome.net_amount)
    emit_router_swap(
        ledger, user, user_destination_account, source_mint, destination_mint, outcome, platform_fee_account
    )
    logger.info("shared_route_completed", user=user, input=params.in_amount, output=outcome.net_amount)
    return outcome


def shared_route_and_create_order(
    ledger: Ledger,
    router: Router,
    user: str,
    nonce: int,
    user_source_account: str,
    user_destination_account: str,
    aggregator_program_id: str,
    accounts: list[AccountMeta],
    data: bytes,
    params: RouteParams,
    terms: OrderTerms,
    platform_fee_account: str | None = None,
) -> tuple[str, RouteOutcome]:
    """Aggregator flavor of ``route_and_create_order``.

    The order shell must already exist in Init, since its escrow has to be
    named as the aggregator's destination account.
    """
    ledger.require_signer(user)
    validate_route_params(params)
    terms = take_profit_terms(ledger, terms)
    source_mint = ledger.token.account(user_source_account).mint
    check_user_account(ledger, user_destination_account, source_mint, user)

    order_address, order = load_init_order(ledger, user, nonce)
    if order.input_mint == source_mint:
        raise error(ErrorCode.INVALID_MINT, "source and destination hold the same mint")
    source_vault = deposit(ledger, user, user_source_account, source_mint, params.in_amount)
    outcome = router.run_aggregator(
        ledger,
        normalize_address(aggregator_program_id),
        accounts,
        data,
        params,
        source_vault,
        order.input_vault,
        platform_fee_account,
    )
    open_order_from_route(ledger, order_address, order, outcome, source_mint, user_destination_account, terms)
    emit_router_swap(
        ledger, user, order.input_vault, source_mint, order.input_mint, outcome, platform_fee_account
    )
    logger.info("shared_route_order_created", order=order_address, escrowed=outcome.net_amount)
    return order_address, outcome


def shared_execute_limit_order(
    ledger: Ledger,
    router: Router,
    operator: str,
    order_address: str,
    aggregator_program_id: str,
    accounts: list[AccountMeta],
    data: bytes,
    quoted_out_amount: int,
    platform_fee_bps: int,
    user_destination_account: str,
    platform_fee_account: str | None = None,
) -> RouteOutcome:
    """Fill an Open order through the aggregator.

    Same checks as ``execute_limit_order``; the aggregator's source must be
    the order escrow and its destination the output asset's vault.
    """
    program_id = normalize_address(aggregator_program_id)

    def run(order: LimitOrder, escrow: str, output_vault: str) -> RouteOutcome:
        params = RouteParams(order.input_amount, quoted_out_amount, order.slippage_bps, platform_fee_bps)
        return router.run_aggregator(
            ledger, program_id, accounts, data, params, escrow, output_vault, platform_fee_account
        )

    return fill_order(ledger, operator, order_address, quoted_out_amount, user_destination_account, run)


__all__ = ["shared_route", "shared_route_and_create_order", "shared_execute_limit_order"]
