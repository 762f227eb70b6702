"""Derived addresses of every program-owned account.

Callers and the program recompute these independently; the program uses
them to check that a caller passed the correct custody account. All helpers
are pure and take the program id so a test deployment can use its own.
"""

from __future__ import annotations

from flipper.constants import (
    ADAPTER_REGISTRY_SEED,
    FLIPPER_PROGRAM_ID,
    GLOBAL_MANAGER_SEED,
    LIMIT_ORDER_SEED,
    ORDER_VAULT_SEED,
    PLATFORM_FEE_SEED,
    POOL_INFO_SEED,
    VAULT_AUTHORITY_SEED,
    VAULT_SEED,
)
from flipper.host.addresses import derive_address
from flipper.models.accounts import SwapKind
from flipper.models.types import address_bytes


def derive_authority_address(program_id: str = FLIPPER_PROGRAM_ID) -> str:
    """Address of the VaultAuthority singleton."""
    return derive_address(program_id, VAULT_AUTHORITY_SEED)


def derive_vault_address(mint: str, program_id: str = FLIPPER_PROGRAM_ID) -> str:
    """Address of the custody vault for ``mint``."""
    return derive_address(program_id, VAULT_SEED, address_bytes(mint))


def derive_platform_fee_address(mint: str, program_id: str = FLIPPER_PROGRAM_ID) -> str:
    """Address of the platform fee vault for ``mint``."""
    return derive_address(program_id, PLATFORM_FEE_SEED, address_bytes(mint))


def derive_pool_info_address(
    swap_type: SwapKind, pool_address: str, program_id: str = FLIPPER_PROGRAM_ID
) -> str:
    """Address of the PoolInfo record for (venue type, pool)."""
    return derive_address(program_id, POOL_INFO_SEED, bytes([int(swap_type)]), address_bytes(pool_address))


def derive_limit_order_address(creator: str, nonce: int, program_id: str = FLIPPER_PROGRAM_ID) -> str:
    """Address of the order identified by (creator, nonce)."""
    return derive_address(
        program_id, LIMIT_ORDER_SEED, address_bytes(creator), nonce.to_bytes(8, "little")
    )


def derive_order_vault_address(order: str, program_id: str = FLIPPER_PROGRAM_ID) -> str:
    """Address of an order's escrow vault."""
    return derive_address(program_id, ORDER_VAULT_SEED, address_bytes(order))


def derive_adapter_registry_address(program_id: str = FLIPPER_PROGRAM_ID) -> str:
    return derive_address(program_id, ADAPTER_REGISTRY_SEED)


def derive_global_manager_address(program_id: str = FLIPPER_PROGRAM_ID) -> str:
    return derive_address(program_id, GLOBAL_MANAGER_SEED)


__all__ = [
    "derive_authority_address",
    "derive_vault_address",
    "derive_platform_fee_address",
    "derive_pool_info_address",
    "derive_limit_order_address",
    "derive_order_vault_address",
    "derive_adapter_registry_address",
    "derive_global_manager_address",
]
