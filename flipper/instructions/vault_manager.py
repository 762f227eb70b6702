"""Custody: the vault authority, per-asset vaults and the global manager.

Every custody vault is a token account owned by the single VaultAuthority
derived address, so venue programs only ever need to trust one signer. The
admin manages vaults; the admin itself can only be replaced by the global
manager, so losing the admin key never strands funds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from flipper import state
from flipper.addresses import (
    derive_authority_address,
    derive_global_manager_address,
    derive_platform_fee_address,
    derive_vault_address,
)
from flipper.constants import (
    GLOBAL_MANAGER_SPACE,
    TOKEN_PROGRAM_ID,
    VAULT_AUTHORITY_SEED,
    VAULT_AUTHORITY_SPACE,
)
from flipper.errors import ErrorCode, TokenError, error
from flipper.events import (
    AggregatorProgramSet,
    GlobalManagerChanged,
    PlatformFeesWithdrawn,
    VaultAdminChanged,
    VaultClosed,
    VaultCreated,
)
from flipper.instructions.common import require_admin, require_admin_or_operator, require_global_manager
from flipper.migrations import migrate
from flipper.models.accounts import GlobalManager, VaultAuthority
from flipper.models.types import normalize_address
from flipper.routing.fees import validate_fee_account

if TYPE_CHECKING:
    from flipper.host.ledger import Ledger

logger = structlog.get_logger()


# --- Global manager ---


def create_global_manager(ledger: Ledger, payer: str, manager: str) -> str:
    """Create the GlobalManager singleton. Callable once."""
    address = derive_global_manager_address(ledger.config.program_id)
    if ledger.exists(address):
        raise error(ErrorCode.ALREADY_INITIALIZED, "global manager")
    ledger.create_account(
        address,
        ledger.config.program_id,
        GLOBAL_MANAGER_SPACE,
        GlobalManager(manager=manager),
        payer,
    )
    logger.info("global_manager_created", manager=manager)
    return address


def change_global_manager(ledger: Ledger, manager: str, new_manager: str) -> None:
    current = require_global_manager(ledger, manager)
    new_manager = normalize_address(new_manager, validate=True)
    ledger.emit(GlobalManagerChanged(old_manager=current.manager, new_manager=new_manager))
    current.manager = new_manager


# --- Vault authority ---


def create_vault_authority(ledger: Ledger, payer: str, admin: str) -> str:
    """Create the VaultAuthority singleton with ``admin``. Callable once."""
    address = derive_authority_address(ledger.config.program_id)
    if ledger.exists(address):
        raise error(ErrorCode.ALREADY_INITIALIZED, "vault authority")
    authority = VaultAuthority(admin=admin, aggregator_program_id=ledger.config.default_aggregator_program_id)
    ledger.create_account(address, ledger.config.program_id, VAULT_AUTHORITY_SPACE, authority, payer)
    logger.info("vault_authority_created", address=address, admin=authority.admin)
    return address


def change_vault_authority_admin(ledger: Ledger, manager: str, new_admin: str) -> None:
    """Replace the vault admin. Only the global manager may call this."""
    require_global_manager(ledger, manager)
    authority = state.vault_authority(ledger)
    new_admin = normalize_address(new_admin, validate=True)
    ledger.emit(VaultAdminChanged(old_admin=authority.admin, new_admin=new_admin))
    authority.admin = new_admin


def set_aggregator_program(ledger: Ledger, admin: str, program_id: str) -> None:
    """Pin the aggregator program trusted by shared routes."""
    authority = require_admin(ledger, admin)
    authority.aggregator_program_id = normalize_address(program_id, validate=True)
    ledger.emit(AggregatorProgramSet(program_id=authority.aggregator_program_id))


def migrate_vault_authority(ledger: Ledger, admin: str) -> int:
    """Re-run schema migrations on the stored authority; returns the resulting version."""
    authority = require_admin(ledger, admin)
    migrated = VaultAuthority.model_validate(
        migrate("VaultAuthority", authority.model_dump(mode="json"), ledger.config)
    )
    ledger.get_account(derive_authority_address(ledger.config.program_id)).data = migrated
    return migrated.schema_version


# --- Vaults ---


def vault_exists(ledger: Ledger, mint: str) -> bool:
    return ledger.exists(derive_vault_address(mint, ledger.config.program_id))


def create_vault(ledger: Ledger, caller: str, mint: str, extension_space: int = 0) -> str:
    """Create the custody vault for ``mint``.

    Args:
        ledger: Host ledger
        caller: Admin or operator; pays the storage deposit
        mint: Asset the vault holds
        extension_space: Extra bytes for extensible-layout mints

    Returns:
        The vault address

    Raises:
        LifecycleError: ALREADY_INITIALIZED if the vault exists
        ValidationError: INVALID_MINT if extensions are requested for a
            legacy-layout mint
    """
    require_admin_or_operator(ledger, caller)
    program_id = ledger.config.program_id
    vault = derive_vault_address(mint, program_id)
    if ledger.exists(vault):
        raise error(ErrorCode.ALREADY_INITIALIZED, f"vault for {mint}")
    if extension_space and ledger.token.mint(mint).token_program == TOKEN_PROGRAM_ID:
        raise error(ErrorCode.INVALID_MINT, "legacy token accounts cannot carry extensions")
    ledger.token.create_account(
        vault, mint, derive_authority_address(program_id), caller, extension_space=extension_space
    )
    ledger.emit(VaultCreated(vault=vault, mint=mint, extension_space=extension_space))
    return vault


def create_vault_with_extensions(ledger: Ledger, caller: str, mint: str, extension_space: int) -> str:
    return create_vault(ledger, caller, mint, extension_space=extension_space)


def initialize_vaults(ledger: Ledger, caller: str, source_mint: str, destination_mint: str) -> tuple[str, str]:
    """Create the vaults for both sides of a pair in one operation."""
    return (
        create_vault(ledger, caller, source_mint),
        create_vault(ledger, caller, destination_mint),
    )


def create_platform_fee_vault(ledger: Ledger, caller: str, mint: str) -> str:
    """Create the authority-owned account that collects platform fees in ``mint``.

    Raises:
        LifecycleError: ALREADY_INITIALIZED if it exists
    """
    require_admin_or_operator(ledger, caller)
    program_id = ledger.config.program_id
    fee_vault = derive_platform_fee_address(mint, program_id)
    if ledger.exists(fee_vault):
        raise error(ErrorCode.ALREADY_INITIALIZED, f"platform fee vault for {mint}")
    ledger.token.create_account(fee_vault, mint, derive_authority_address(program_id), caller)
    logger.info("platform_fee_vault_created", fee_vault=fee_vault, mint=mint)
    return fee_vault


def close_vault(ledger: Ledger, admin: str, mint: str, destination: str) -> int:
    """Close an empty vault, returning its storage deposit to ``destination``.

    Raises:
        LifecycleError: VAULT_NOT_EMPTY unless the balance is exactly zero
    """
    require_admin(ledger, admin)
    program_id = ledger.config.program_id
    vault = derive_vault_address(mint, program_id)
    authority = derive_authority_address(program_id)
    data = ledger.token.account(vault)
    if data.owner != authority:
        raise error(ErrorCode.INVALID_VAULT_OWNER, vault)
    if data.amount != 0:
        raise error(ErrorCode.VAULT_NOT_EMPTY, f"{vault} holds {data.amount}")
    with ledger.sign_with(VAULT_AUTHORITY_SEED):
        reclaimed = ledger.token.close_account(vault, destination, authority)
    ledger.emit(VaultClosed(vault=vault, mint=mint, destination=destination))
    return reclaimed


def withdraw_platform_fees(
    ledger: Ledger, manager: str, fee_account: str, destination: str, amount: int
) -> None:
    """Move accumulated platform fees out to ``destination``. Global manager only.

    Raises:
        ValidationError: INVALID_PLATFORM_FEE_OWNER unless ``fee_account`` is
            the platform fee vault of its mint
    """
    require_global_manager(ledger, manager)
    if amount <= 0:
        raise error(ErrorCode.INVALID_AMOUNT, "withdrawal amount must be positive")
    authority = derive_authority_address(ledger.config.program_id)
    mint = ledger.token.account(fee_account).mint
    validate_fee_account(ledger, fee_account, mint, authority)
    try:
        destination_mint = ledger.token.account(destination).mint
    except TokenError as err:
        raise error(ErrorCode.INVALID_DESTINATION_ACCOUNT, str(err)) from err
    if destination_mint != mint:
        raise error(ErrorCode.INVALID_MINT, "destination holds a different mint")
    with ledger.sign_with(VAULT_AUTHORITY_SEED):
        ledger.token.transfer(fee_account, destination, authority, amount)
    ledger.emit(PlatformFeesWithdrawn(fee_account=fee_account, destination=destination, mint=mint, amount=amount))


__all__ = [
    "create_global_manager",
    "change_global_manager",
    "create_vault_authority",
    "change_vault_authority_admin",
    "set_aggregator_program",
    "migrate_vault_authority",
    "vault_exists",
    "create_vault",
    "create_vault_with_extensions",
    "initialize_vaults",
    "create_platform_fee_vault",
    "close_vault",
    "withdraw_platform_fees",
]
