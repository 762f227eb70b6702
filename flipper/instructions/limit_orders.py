"""Trigger-priced limit orders.

Lifecycle::

    init ──► Init ──create──► Open ──execute──► Filled
               │                │
               │                └──cancel / cancel expired──► Cancelled
               └──cancel / close by operator──► Cancelled

An order's funds sit in its own escrow vault (owned by the vault
authority) from the moment it opens. Filled and Cancelled are terminal:
the escrow is drained and both the escrow and the order account are
closed in the same transaction that sets the status, so a second execute
or cancel fails with AccountNotFound instead of paying twice.

Execution authority is delegated to operators, who supply a fresh quote;
the creator keeps the right to cancel at any time before a fill. Expiry
is only ever checked by whoever calls an operation: expired orders are not
swept automatically.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from flipper import state
from flipper.addresses import (
    derive_authority_address,
    derive_limit_order_address,
    derive_order_vault_address,
    derive_vault_address,
)
from flipper.constants import (
    LIMIT_ORDER_SPACE,
    MAX_SLIPPAGE_BPS,
    MAX_TRIGGER_PRICE_BPS,
    TOKEN_PROGRAM_ID,
    VAULT_AUTHORITY_SEED,
)
from flipper.errors import ErrorCode, TokenError, error
from flipper.events import LimitOrderClosed, LimitOrderCreated, LimitOrderExecuted, LimitOrderInitialized
from flipper.instructions.common import require_operator
from flipper.models.accounts import LimitOrder, OrderStatus, TriggerType
from flipper.models.types import normalize_address
from flipper.routing.types import RouteOutcome, RouteParams

if TYPE_CHECKING:
    from flipper.host.instruction import AccountMeta
    from flipper.host.ledger import Ledger
    from flipper.models.route import RouteHop
    from flipper.routing.router import Router

logger = structlog.get_logger()

# Runs the liquidation route: (order, escrow, output vault) -> outcome
FillRoute = Callable[[LimitOrder, str, str], RouteOutcome]


@dataclass(frozen=True)
class OrderTerms:
    """Trigger and tolerance settings of an order.

    Attributes:
        min_output_amount: Baseline output for the whole input amount
        trigger_price_bps: Distance from the baseline that must be crossed,
            in (0, 100000]
        expiry: Clock value from which the order can no longer be executed
        slippage_bps: Tolerated shortfall of the realized output below the
            operator's quote
        trigger_type: Direction of the trigger
    """

    min_output_amount: int
    trigger_price_bps: int
    expiry: int
    slippage_bps: int
    trigger_type: TriggerType = TriggerType.TAKE_PROFIT


def validate_order_terms(ledger: Ledger, terms: OrderTerms) -> None:
    """Check an order's terms against the current clock.

    Raises:
        ValidationError: INVALID_AMOUNT, INVALID_TRIGGER_PRICE,
            INVALID_SLIPPAGE or INVALID_EXPIRY
    """
    if terms.min_output_amount <= 0:
        raise error(ErrorCode.INVALID_AMOUNT, "minimum output must be positive")
    if not 0 < terms.trigger_price_bps <= MAX_TRIGGER_PRICE_BPS:
        raise error(ErrorCode.INVALID_TRIGGER_PRICE, str(terms.trigger_price_bps))
    if not 0 <= terms.slippage_bps <= MAX_SLIPPAGE_BPS:
        raise error(ErrorCode.INVALID_SLIPPAGE, str(terms.slippage_bps))
    if terms.expiry <= ledger.clock:
        raise error(ErrorCode.INVALID_EXPIRY, f"expiry {terms.expiry} is not after {ledger.clock}")


def check_user_account(ledger: Ledger, account: str, mint: str, owner: str) -> None:
    """Require a token account of ``mint`` owned by ``owner``.

    Raises:
        ValidationError: INVALID_DESTINATION_ACCOUNT otherwise
    """
    try:
        data = ledger.token.account(account)
    except TokenError as err:
        raise error(ErrorCode.INVALID_DESTINATION_ACCOUNT, str(err)) from err
    if data.mint != normalize_address(mint) or data.owner != normalize_address(owner):
        raise error(ErrorCode.INVALID_DESTINATION_ACCOUNT, account)


def _require_status(order: LimitOrder, *allowed: OrderStatus) -> None:
    if order.status not in allowed:
        raise error(ErrorCode.INVALID_ORDER_STATUS, order.status.name)


def _open(
    ledger: Ledger,
    order_address: str,
    order: LimitOrder,
    output_mint: str,
    input_amount: int,
    user_destination_account: str,
    terms: OrderTerms,
) -> None:
    order.output_mint = normalize_address(output_mint)
    order.user_destination_account = normalize_address(user_destination_account)
    order.input_amount = input_amount
    order.min_output_amount = terms.min_output_amount
    order.trigger_price_bps = terms.trigger_price_bps
    order.trigger_type = terms.trigger_type
    order.expiry = terms.expiry
    order.slippage_bps = terms.slippage_bps
    order.status = OrderStatus.OPEN
    if ledger.token.balance(order.input_vault) != input_amount:
        raise error(ErrorCode.INVALID_CALCULATION, "escrow does not hold the order's input amount")
    ledger.emit(
        LimitOrderCreated(
            order=order_address,
            creator=order.creator,
            input_mint=order.input_mint,
            output_mint=order.output_mint,
            input_amount=input_amount,
            min_output_amount=terms.min_output_amount,
            trigger_price_bps=terms.trigger_price_bps,
            trigger_type=terms.trigger_type,
            expiry=terms.expiry,
        )
    )


def _refund(ledger: Ledger, order: LimitOrder, creator_input_account: str | None) -> int:
    escrow_balance = ledger.token.balance(order.input_vault)
    if escrow_balance == 0:
        return 0
    if creator_input_account is None:
        raise error(ErrorCode.INVALID_DESTINATION_ACCOUNT, "refund account required")
    check_user_account(ledger, creator_input_account, order.input_mint, order.creator)
    authority = derive_authority_address(ledger.config.program_id)
    with ledger.sign_with(VAULT_AUTHORITY_SEED):
        ledger.token.transfer(order.input_vault, creator_input_account, authority, escrow_balance)
    return escrow_balance


def _close(ledger: Ledger, order_address: str, order: LimitOrder, status: OrderStatus, recipient: str) -> None:
    """Set the terminal status and close escrow and order, deposits to ``recipient``."""
    order.status = status
    authority = derive_authority_address(ledger.config.program_id)
    with ledger.sign_with(VAULT_AUTHORITY_SEED):
        ledger.token.close_account(order.input_vault, recipient, authority)
    ledger.close_account(order_address, recipient)
    ledger.emit(LimitOrderClosed(order=order_address, status=status, recipient=recipient))


def ensure_order_shell(ledger: Ledger, creator: str, nonce: int, input_mint: str, extension_space: int = 0) -> str:
    """Allocate an Init order and its escrow for ``input_mint``.

    Returns:
        The order address

    Raises:
        LifecycleError: ALREADY_INITIALIZED if the (creator, nonce) order exists
    """
    ledger.require_signer(creator)
    state.vault_authority(ledger)
    program_id = ledger.config.program_id
    order_address = derive_limit_order_address(creator, nonce, program_id)
    if ledger.exists(order_address):
        raise error(ErrorCode.ALREADY_INITIALIZED, f"order {nonce} of {creator}")
    if extension_space and ledger.token.mint(input_mint).token_program == TOKEN_PROGRAM_ID:
        raise error(ErrorCode.INVALID_MINT, "legacy token accounts cannot carry extensions")

    escrow = derive_order_vault_address(order_address, program_id)
    order = LimitOrder(creator=creator, nonce=nonce, input_mint=input_mint, input_vault=escrow)
    ledger.create_account(order_address, program_id, LIMIT_ORDER_SPACE, order, creator)
    ledger.token.create_account(
        escrow, input_mint, derive_authority_address(program_id), creator, extension_space=extension_space
    )
    ledger.emit(LimitOrderInitialized(order=order_address, creator=creator, nonce=nonce, input_vault=escrow))
    return order_address


def init_limit_order(ledger: Ledger, creator: str, nonce: int, input_mint: str, extension_space: int = 0) -> str:
    """Allocate an unfunded order shell (status Init)."""
    return ensure_order_shell(ledger, creator, nonce, input_mint, extension_space)


def load_init_order(ledger: Ledger, creator: str, nonce: int) -> tuple[str, LimitOrder]:
    """Load the (creator, nonce) order, requiring it to be an Init shell owned by ``creator``."""
    order_address = derive_limit_order_address(creator, nonce, ledger.config.program_id)
    order = state.limit_order(ledger, order_address)
    if order.creator != normalize_address(creator):
        raise error(ErrorCode.INVALID_CREATOR, creator)
    _require_status(order, OrderStatus.INIT)
    return order_address, order


def create_limit_order(
    ledger: Ledger,
    creator: str,
    nonce: int,
    input_amount: int,
    terms: OrderTerms,
    output_mint: str,
    user_input_account: str,
    user_destination_account: str,
) -> str:
    """Fund an Init order from the creator's account and open it.

    Raises:
        LifecycleError: INVALID_ORDER_STATUS unless the order is Init
        ValidationError: for out-of-range terms or mismatched accounts
    """
    ledger.require_signer(creator)
    if input_amount <= 0:
        raise error(ErrorCode.INVALID_AMOUNT, "input amount must be positive")
    validate_order_terms(ledger, terms)
    order_address, order = load_init_order(ledger, creator, nonce)
    if normalize_address(output_mint) == order.input_mint:
        raise error(ErrorCode.INVALID_MINT, "output mint equals input mint")
    check_user_account(ledger, user_destination_account, output_mint, creator)

    ledger.token.transfer(user_input_account, order.input_vault, creator, input_amount)
    _open(ledger, order_address, order, output_mint, input_amount, user_destination_account, terms)
    return order_address


def open_order_from_route(
    ledger: Ledger,
    order_address: str,
    order: LimitOrder,
    outcome: RouteOutcome,
    output_mint: str,
    user_destination_account: str,
    terms: OrderTerms,
) -> None:
    """Open an order whose escrow was just funded by a route's net output."""
    if outcome.net_amount <= 0:
        raise error(ErrorCode.INVALID_AMOUNT, "route produced no output for the order")
    _open(ledger, order_address, order, output_mint, outcome.net_amount, user_destination_account, terms)


def fill_order(
    ledger: Ledger,
    operator: str,
    order_address: str,
    quoted_out_amount: int,
    user_destination_account: str,
    run: FillRoute,
) -> RouteOutcome:
    """Shared fill logic for per-hop and aggregator execution.

    Checks status, expiry and trigger, liquidates the escrow into the
    output vault via ``run``, pays the creator's destination and closes the
    order with its deposits going to the operator.
    """
    require_operator(ledger, operator)
    order = state.limit_order(ledger, order_address)
    _require_status(order, OrderStatus.OPEN)
    if ledger.clock >= order.expiry:
        raise error(ErrorCode.ORDER_EXPIRED, f"expired at {order.expiry}")
    if not order.should_execute(quoted_out_amount):
        raise error(
            ErrorCode.TRIGGER_PRICE_NOT_MET,
            f"ratio {order.price_ratio_bps(quoted_out_amount)} bps",
        )
    if normalize_address(user_destination_account) != order.user_destination_account:
        raise error(ErrorCode.INVALID_DESTINATION_ACCOUNT, user_destination_account)

    program_id = ledger.config.program_id
    output_vault = derive_vault_address(order.output_mint, program_id)
    outcome = run(order, order.input_vault, output_vault)
    if ledger.token.balance(order.input_vault) != 0:
        raise error(ErrorCode.INVALID_CALCULATION, "escrow not fully spent")

    authority = derive_authority_address(program_id)
    with ledger.sign_with(VAULT_AUTHORITY_SEED):
        ledger.token.transfer(output_vault, order.user_destination_account, authority, outcome.net_amount)
    ledger.emit(
        LimitOrderExecuted(
            order=order_address,
            executor=operator,
            input_amount=order.input_amount,
            output_amount=outcome.net_amount,
            fee_amount=outcome.fee_amount,
        )
    )
    _close(ledger, order_address, order, OrderStatus.FILLED, operator)
    logger.info("limit_order_filled", order=order_address, output=outcome.net_amount, fee=outcome.fee_amount)
    return outcome


def execute_limit_order(
    ledger: Ledger,
    router: Router,
    operator: str,
    order_address: str,
    route_plan: list[RouteHop],
    accounts: list[AccountMeta],
    quoted_out_amount: int,
    platform_fee_bps: int,
    user_destination_account: str,
    platform_fee_account: str | None = None,
) -> RouteOutcome:
    """Fill an Open order through per-hop venue adapters.

    Raises:
        ExecutionError: TRIGGER_PRICE_NOT_MET if the quote does not cross
            the trigger; SLIPPAGE_TOLERANCE_EXCEEDED if the realized output
            falls below the order's tolerance
        LifecycleError: INVALID_ORDER_STATUS or ORDER_EXPIRED
    """

    def run(order: LimitOrder, escrow: str, output_vault: str) -> RouteOutcome:
        params = RouteParams(order.input_amount, quoted_out_amount, order.slippage_bps, platform_fee_bps)
        return router.run_plan(ledger, route_plan, accounts, params, escrow, output_vault, platform_fee_account)

    return fill_order(ledger, operator, order_address, quoted_out_amount, user_destination_account, run)


def cancel_limit_order(
    ledger: Ledger, creator: str, order_address: str, creator_input_account: str | None = None
) -> int:
    """Cancel an Init or Open order, refunding the escrow to the creator.

    Returns:
        Amount refunded
    """
    ledger.require_signer(creator)
    order = state.limit_order(ledger, order_address)
    if order.creator != normalize_address(creator):
        raise error(ErrorCode.INVALID_CREATOR, creator)
    _require_status(order, OrderStatus.INIT, OrderStatus.OPEN)
    refunded = _refund(ledger, order, creator_input_account)
    _close(ledger, order_address, order, OrderStatus.CANCELLED, order.creator)
    return refunded


def close_limit_order_by_operator(ledger: Ledger, operator: str, order_address: str) -> None:
    """Reclaim an abandoned, never-funded Init shell."""
    require_operator(ledger, operator)
    order = state.limit_order(ledger, order_address)
    _require_status(order, OrderStatus.INIT)
    _close(ledger, order_address, order, OrderStatus.CANCELLED, operator)


def cancel_expired_limit_order_by_operator(
    ledger: Ledger, operator: str, order_address: str, creator_input_account: str
) -> int:
    """Refund an expired Open order to its creator and reclaim its accounts.

    Raises:
        LifecycleError: ORDER_NOT_EXPIRED before the expiry
    """
    require_operator(ledger, operator)
    order = state.limit_order(ledger, order_address)
    _require_status(order, OrderStatus.OPEN)
    if ledger.clock < order.expiry:
        raise error(ErrorCode.ORDER_NOT_EXPIRED, f"expires at {order.expiry}")
    refunded = _refund(ledger, order, creator_input_account)
    _close(ledger, order_address, order, OrderStatus.CANCELLED, operator)
    return refunded


__all__ = [
    "OrderTerms",
    "FillRoute",
    "validate_order_terms",
    "check_user_account",
    "ensure_order_shell",
    "init_limit_order",
    "load_init_order",
    "create_limit_order",
    "open_order_from_route",
    "fill_order",
    "execute_limit_order",
    "cancel_limit_order",
    "close_limit_order_by_operator",
    "cancel_expired_limit_order_by_operator",
]
