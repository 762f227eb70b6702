"""User-facing swaps through per-hop venue adapters.

A route moves the user's input into the source vault, runs the plan
vault-to-vault and pays the net output out of the destination vault. The
order-creating variant stops before the payout: the net output stays in a
fresh order's escrow and opens a TakeProfit order in the reverse direction.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

import structlog

from flipper import state
from flipper.addresses import derive_authority_address, derive_limit_order_address, derive_vault_address
from flipper.constants import VAULT_AUTHORITY_SEED
from flipper.errors import ErrorCode, TokenError, error
from flipper.events import RouterSwapEvent
from flipper.instructions.limit_orders import (
    OrderTerms,
    check_user_account,
    ensure_order_shell,
    load_init_order,
    open_order_from_route,
    validate_order_terms,
)
from flipper.models.accounts import LimitOrder, TriggerType
from flipper.models.types import normalize_address
from flipper.routing.validator import validate_route_params

if TYPE_CHECKING:
    from flipper.host.instruction import AccountMeta
    from flipper.host.ledger import Ledger
    from flipper.models.route import RouteHop
    from flipper.routing.router import Router
    from flipper.routing.types import RouteOutcome, RouteParams

logger = structlog.get_logger()


def resolve_pair(ledger: Ledger, user_source_account: str, user_destination_account: str) -> tuple[str, str]:
    """Return (source mint, destination mint) of the user's two accounts."""
    source_mint = ledger.token.account(user_source_account).mint
    try:
        destination_mint = ledger.token.account(user_destination_account).mint
    except TokenError as err:
        raise error(ErrorCode.INVALID_DESTINATION_ACCOUNT, str(err)) from err
    if source_mint == destination_mint:
        raise error(ErrorCode.INVALID_MINT, "source and destination hold the same mint")
    return source_mint, destination_mint


def deposit(ledger: Ledger, user: str, user_source_account: str, mint: str, amount: int) -> str:
    """Move the route input from the user into the source vault; returns the vault."""
    vault = derive_vault_address(mint, ledger.config.program_id)
    ledger.token.transfer(user_source_account, vault, user, amount)
    return vault


def pay_out(ledger: Ledger, vault: str, destination: str, amount: int) -> None:
    authority = derive_authority_address(ledger.config.program_id)
    with ledger.sign_with(VAULT_AUTHORITY_SEED):
        ledger.token.transfer(vault, destination, authority, amount)


def emit_router_swap(
    ledger: Ledger,
    sender: str,
    recipient: str,
    input_mint: str,
    output_mint: str,
    outcome: RouteOutcome,
    fee_account: str | None,
) -> None:
    ledger.emit(
        RouterSwapEvent(
            sender=sender,
            recipient=recipient,
            input_mint=input_mint,
            output_mint=output_mint,
            input_amount=outcome.input_amount,
            output_amount=outcome.net_amount,
            fee_amount=outcome.fee_amount,
            fee_account=fee_account if outcome.fee_amount else None,
        )
    )


def prepare_order(
    ledger: Ledger,
    user: str,
    nonce: int,
    order_input_mint: str,
    extension_space: int = 0,
    create: bool = True,
) -> tuple[str, LimitOrder]:
    """Load the user's Init order for ``nonce``, allocating it first if ``create``.

    Raises:
        ValidationError: INVALID_MINT if an existing shell escrows another mint
        LifecycleError: INVALID_ORDER_STATUS if the order is past Init
    """
    order_address = derive_limit_order_address(user, nonce, ledger.config.program_id)
    if create and not ledger.exists(order_address):
        ensure_order_shell(ledger, user, nonce, order_input_mint, extension_space)
    order_address, order = load_init_order(ledger, user, nonce)
    if order.input_mint != normalize_address(order_input_mint):
        raise error(ErrorCode.INVALID_MINT, "order escrow holds a different mint")
    return order_address, order


def take_profit_terms(ledger: Ledger, terms: OrderTerms) -> OrderTerms:
    """Orders created from a route are always TakeProfit."""
    terms = replace(terms, trigger_type=TriggerType.TAKE_PROFIT)
    validate_order_terms(ledger, terms)
    return terms


def route(
    ledger: Ledger,
    router: Router,
    user: str,
    user_source_account: str,
    user_destination_account: str,
    route_plan: list[RouteHop],
    accounts: list[AccountMeta],
    params: RouteParams,
    platform_fee_account: str | None = None,
) -> RouteOutcome:
    """Swap ``params.in_amount`` of the user's source asset into the destination account.

    Args:
        ledger: Host ledger, inside the caller's transaction
        router: Router running the plan
        user: Signing owner of ``user_source_account``
        user_source_account: Token account spent from
        user_destination_account: Token account receiving the net output
        route_plan: Hops from the source vault to the destination vault
        accounts: Flat account list the hops index into
        params: Amounts and tolerances
        platform_fee_account: Fee account owned by the vault authority

    Returns:
        The settled RouteOutcome
    """
    ledger.require_signer(user)
    validate_route_params(params)
    state.vault_authority(ledger)
    source_mint, destination_mint = resolve_pair(ledger, user_source_account, user_destination_account)
    source_vault = deposit(ledger, user, user_source_account, source_mint, params.in_amount)
    destination_vault = derive_vault_address(destination_mint, ledger.config.program_id)

    outcome = router.run_plan(
        ledger, route_plan, accounts, params, source_vault, destination_vault, platform_fee_account
    )
    pay_out(ledger, destination_vault, user_destination_account, outcome.net_amount)
    emit_router_swap(
        ledger, user, user_destination_account, source_mint, destination_mint, outcome, platform_fee_account
    )
    logger.info("route_completed", user=user, input=params.in_amount, output=outcome.net_amount)
    return outcome


def route_and_create_order(
    ledger: Ledger,
    router: Router,
    user: str,
    nonce: int,
    user_source_account: str,
    user_destination_account: str,
    destination_mint: str,
    route_plan: list[RouteHop],
    accounts: list[AccountMeta],
    params: RouteParams,
    terms: OrderTerms,
    platform_fee_account: str | None = None,
    extension_space: int = 0,
) -> tuple[str, RouteOutcome]:
    """Swap into a new order's escrow and open it as a reverse TakeProfit order.

    The order's input is the swap's output asset and its output is the
    swap's input asset; ``user_destination_account`` receives the order's
    eventual fill and must hold the swap's input asset.

    Returns:
        (order address, RouteOutcome)
    """
    ledger.require_signer(user)
    validate_route_params(params)
    terms = take_profit_terms(ledger, terms)
    source_mint = ledger.token.account(user_source_account).mint
    if source_mint == normalize_address(destination_mint):
        raise error(ErrorCode.INVALID_MINT, "source and destination hold the same mint")
    check_user_account(ledger, user_destination_account, source_mint, user)

    order_address, order = prepare_order(ledger, user, nonce, destination_mint, extension_space)
    source_vault = deposit(ledger, user, user_source_account, source_mint, params.in_amount)
    outcome = router.run_plan(
        ledger, route_plan, accounts, params, source_vault, order.input_vault, platform_fee_account
    )
    open_order_from_route(ledger, order_address, order, outcome, source_mint, user_destination_account, terms)
    emit_router_swap(
        ledger, user, order.input_vault, source_mint, order.input_mint, outcome, platform_fee_account
    )
    logger.info("route_order_created", order=order_address, escrowed=outcome.net_amount)
    return order_address, outcome


__all__ = [
    "resolve_pair",
    "deposit",
    "pay_out",
    "emit_router_swap",
    "prepare_order",
    "take_profit_terms",
    "route",
    "route_and_create_order",
]
