"""Platform fee and slippage arithmetic.

Both are basis-point fractions of an output amount, rounded down:

    fee       = output * fee_bps // 10_000
    min_out   = quoted * (10_000 - slippage_bps) // 10_000
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from flipper.addresses import derive_platform_fee_address
from flipper.constants import BPS_DENOMINATOR, VAULT_AUTHORITY_SEED
from flipper.errors import ErrorCode, TokenError, error
from flipper.events import FeeEvent
from flipper.models.types import normalize_address
from flipper.safe_int import S

if TYPE_CHECKING:
    from flipper.host.ledger import Ledger

logger = structlog.get_logger()


def calculate_platform_fee(amount: int, fee_bps: int) -> int:
    """Fee owed on ``amount`` at ``fee_bps``."""
    return S(amount).mul_div(fee_bps, BPS_DENOMINATOR).to_u64()


def min_output_after_slippage(quoted_out_amount: int, slippage_bps: int) -> int:
    """Lowest output tolerated for a quote."""
    return S(quoted_out_amount).mul_div(BPS_DENOMINATOR - slippage_bps, BPS_DENOMINATOR).to_u64()


def validate_fee_account(ledger: Ledger, fee_account: str, mint: str, authority: str) -> None:
    """Check that ``fee_account`` is the platform fee vault for ``mint``.

    Custody vaults and order escrows are also authority-owned token accounts
    of the same mint; only the derived fee vault address is accepted.

    Raises:
        ValidationError: INVALID_PLATFORM_FEE_OWNER or INVALID_PLATFORM_FEE_MINT
    """
    try:
        data = ledger.token.account(fee_account)
    except TokenError as err:
        raise error(ErrorCode.INVALID_PLATFORM_FEE_OWNER, str(err)) from err
    if data.owner != authority:
        raise error(ErrorCode.INVALID_PLATFORM_FEE_OWNER, fee_account)
    if data.mint != mint:
        raise error(ErrorCode.INVALID_PLATFORM_FEE_MINT, fee_account)
    if normalize_address(fee_account) != derive_platform_fee_address(mint, ledger.config.program_id):
        raise error(ErrorCode.INVALID_PLATFORM_FEE_OWNER, f"{fee_account} is not the platform fee vault")


def collect_platform_fee(
    ledger: Ledger,
    source: str,
    fee_account: str | None,
    output_amount: int,
    fee_bps: int,
    authority: str,
) -> int:
    """Move the platform fee from ``source`` (a vault-authority account) to the fee account.

    Returns:
        Fee amount moved; zero when ``fee_bps`` is zero or no fee account
        was supplied

    Raises:
        ValidationError: If the supplied fee account is not the fee vault
            for the output mint
    """
    if fee_bps == 0 or fee_account is None:
        return 0
    mint = ledger.token.account(source).mint
    validate_fee_account(ledger, fee_account, mint, authority)

    fee = calculate_platform_fee(output_amount, fee_bps)
    if fee == 0:
        return 0
    with ledger.sign_with(VAULT_AUTHORITY_SEED):
        ledger.token.transfer(source, fee_account, authority, fee)
    ledger.emit(FeeEvent(account=fee_account, mint=mint, amount=fee))
    logger.debug("platform_fee_collected", fee=fee, fee_bps=fee_bps, output=output_amount)
    return fee


__all__ = [
    "calculate_platform_fee",
    "min_output_after_slippage",
    "validate_fee_account",
    "collect_platform_fee",
]
