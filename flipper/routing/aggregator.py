"""Shared routes: one call into an external aggregator instead of per-hop adapters.

The aggregator receives opaque route data built off-chain and a flat
account list whose fixed positions must name the vault authority (the
transfer authority), the source account and the destination account.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from flipper.constants import VAULT_AUTHORITY_SEED
from flipper.errors import ErrorCode, error
from flipper.host.instruction import AccountMeta, Instruction

if TYPE_CHECKING:
    from flipper.host.ledger import Ledger
    from flipper.models.accounts import VaultAuthority

logger = structlog.get_logger()

MIN_AGGREGATOR_ACCOUNTS = 13
AUTHORITY_POSITION = 2
SOURCE_POSITION = 3
DESTINATION_POSITION = 6


def validate_aggregator_call(
    vault_authority: VaultAuthority,
    program_id: str,
    accounts: list[AccountMeta],
    data: bytes,
    authority: str,
    source: str,
    destination: str,
) -> None:
    """Check an aggregator call before any funds move.

    Raises:
        ValidationError: INVALID_AGGREGATOR_PROGRAM, EMPTY_ROUTE,
            NOT_ENOUGH_ACCOUNT_KEYS or AGGREGATOR_*_MISMATCH
    """
    if vault_authority.aggregator_program_id is None or program_id != vault_authority.aggregator_program_id:
        raise error(ErrorCode.INVALID_AGGREGATOR_PROGRAM, program_id)
    if not data:
        raise error(ErrorCode.EMPTY_ROUTE, "aggregator route data is empty")
    if len(accounts) < MIN_AGGREGATOR_ACCOUNTS:
        raise error(
            ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS,
            f"expected at least {MIN_AGGREGATOR_ACCOUNTS} accounts, got {len(accounts)}",
        )
    if accounts[AUTHORITY_POSITION].pubkey != authority:
        raise error(ErrorCode.AGGREGATOR_AUTHORITY_MISMATCH)
    if accounts[SOURCE_POSITION].pubkey != source:
        raise error(ErrorCode.AGGREGATOR_SOURCE_MISMATCH)
    if accounts[DESTINATION_POSITION].pubkey != destination:
        raise error(ErrorCode.AGGREGATOR_DESTINATION_MISMATCH)


def invoke_aggregator(ledger: Ledger, program_id: str, accounts: list[AccountMeta], data: bytes) -> None:
    """Invoke the aggregator signed by the vault authority.

    The authority slot is re-flagged as a signer; the caller's other flags
    are passed through unchanged.
    """
    metas = [
        AccountMeta(meta.pubkey, meta.is_writable, True) if i == AUTHORITY_POSITION else meta
        for i, meta in enumerate(accounts)
    ]
    logger.debug("aggregator_invoked", program_id=program_id, accounts=len(metas), data_len=len(data))
    ledger.invoke(Instruction(program_id, metas, data), signer_seeds=[(VAULT_AUTHORITY_SEED,)])


__all__ = [
    "MIN_AGGREGATOR_ACCOUNTS",
    "AUTHORITY_POSITION",
    "SOURCE_POSITION",
    "DESTINATION_POSITION",
    "validate_aggregator_call",
    "invoke_aggregator",
]
