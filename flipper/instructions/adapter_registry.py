"""Venue directory, operator set and trusted-pool records.

All operations here are configuration only; none moves funds. Adapter
entries are disabled, never removed, since PoolInfo records keep
referencing them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from flipper import state
from flipper.addresses import derive_adapter_registry_address, derive_pool_info_address
from flipper.constants import ADAPTER_REGISTRY_SPACE, POOL_INFO_SPACE
from flipper.errors import ErrorCode, error
from flipper.events import (
    AdapterConfigured,
    AdapterDisabled,
    AuthorityChanged,
    OperatorAdded,
    OperatorRemoved,
    PoolDisabled,
    PoolInitialized,
    RegistryReset,
)
from flipper.instructions.common import require_operator, require_registry_authority
from flipper.migrations import migrate
from flipper.models.accounts import AdapterInfo, AdapterRegistry, PoolInfo, SwapKind
from flipper.models.types import normalize_address

if TYPE_CHECKING:
    from flipper.config import FlipperConfig
    from flipper.host.ledger import Ledger

logger = structlog.get_logger()


def _check_capacity(config: FlipperConfig, adapters: list[AdapterInfo], operators: list[str]) -> None:
    if len(adapters) > config.max_adapters:
        raise error(ErrorCode.ADAPTER_LIMIT_REACHED, f"{len(adapters)} > {config.max_adapters}")
    if len(operators) > config.max_operators:
        raise error(ErrorCode.OPERATOR_LIMIT_REACHED, f"{len(operators)} > {config.max_operators}")
    if len({adapter.swap_type for adapter in adapters}) != len(adapters):
        raise error(ErrorCode.DUPLICATE_ADAPTER, "one entry per venue type")
    if len(set(operators)) != len(operators):
        raise error(ErrorCode.OPERATOR_ALREADY_EXISTS, "duplicate operator")


def initialize_adapter_registry(
    ledger: Ledger,
    authority: str,
    adapters: list[AdapterInfo],
    operators: list[str],
) -> str:
    """Create the AdapterRegistry singleton with ``authority`` as its owner.

    Raises:
        LifecycleError: ALREADY_INITIALIZED on a second call
    """
    ledger.require_signer(authority)
    address = derive_adapter_registry_address(ledger.config.program_id)
    if ledger.exists(address):
        raise error(ErrorCode.ALREADY_INITIALIZED, "adapter registry")
    operators = [normalize_address(op, validate=True) for op in operators]
    _check_capacity(ledger.config, adapters, operators)
    registry = AdapterRegistry(authority=authority, operators=operators, adapters=list(adapters))
    ledger.create_account(address, ledger.config.program_id, ADAPTER_REGISTRY_SPACE, registry, authority)
    logger.info(
        "adapter_registry_initialized",
        authority=registry.authority,
        adapters=len(registry.adapters),
        operators=len(registry.operators),
    )
    return address


def configure_adapter(ledger: Ledger, operator: str, adapter: AdapterInfo) -> None:
    """Insert or replace the entry for ``adapter.swap_type``.

    Replacing re-enables a disabled entry.

    Raises:
        ConfigurationError: DUPLICATE_ADAPTER if an identical enabled entry
            exists; ADAPTER_LIMIT_REACHED if the registry is full
    """
    registry = require_operator(ledger, operator)
    existing = registry.find_adapter(adapter.swap_type)
    if existing is not None:
        if existing.enabled and existing.program_id == adapter.program_id:
            raise error(ErrorCode.DUPLICATE_ADAPTER, adapter.swap_type.name)
        registry.adapters[registry.adapters.index(existing)] = adapter.model_copy(update={"enabled": True})
    else:
        if len(registry.adapters) >= ledger.config.max_adapters:
            raise error(ErrorCode.ADAPTER_LIMIT_REACHED)
        registry.adapters.append(adapter.model_copy(update={"enabled": True}))
    ledger.emit(AdapterConfigured(program_id=adapter.program_id, swap_type=adapter.swap_type))


def disable_adapter(ledger: Ledger, operator: str, swap_type: SwapKind) -> None:
    """Mark a venue type unusable, keeping its entry.

    Raises:
        ConfigurationError: SWAP_NOT_SUPPORTED if the venue type has no entry
    """
    registry = require_operator(ledger, operator)
    existing = registry.find_adapter(swap_type)
    if existing is None:
        raise error(ErrorCode.SWAP_NOT_SUPPORTED, swap_type.name)
    existing.enabled = False
    ledger.emit(AdapterDisabled(swap_type=swap_type))


def initialize_pool_info(ledger: Ledger, operator: str, swap_type: SwapKind, pool_address: str) -> str:
    """Register a trusted pool for an enabled venue type.

    Raises:
        ConfigurationError: ADAPTER_NOT_CONFIGURED if the venue type is
            missing or disabled
        AccountAlreadyExists: if (venue type, pool) is already registered
    """
    registry = require_operator(ledger, operator)
    adapter = registry.find_adapter(swap_type)
    if adapter is None or not adapter.enabled:
        raise error(ErrorCode.ADAPTER_NOT_CONFIGURED, swap_type.name)
    address = derive_pool_info_address(swap_type, pool_address, ledger.config.program_id)
    pool = PoolInfo(swap_type=swap_type, pool_address=pool_address)
    ledger.create_account(address, ledger.config.program_id, POOL_INFO_SPACE, pool, operator)
    ledger.emit(PoolInitialized(swap_type=swap_type, pool_address=pool.pool_address))
    return address


def disable_pool(ledger: Ledger, operator: str, swap_type: SwapKind, pool_address: str) -> None:
    """Disable one pool independently of its venue type.

    Raises:
        ValidationError: INVALID_POOL_ADDRESS if the record pins another pool
        ConfigurationError: POOL_DISABLED if already disabled
    """
    require_operator(ledger, operator)
    address = derive_pool_info_address(swap_type, pool_address, ledger.config.program_id)
    pool = state.pool_info(ledger, address)
    if pool.pool_address != normalize_address(pool_address) or pool.swap_type != swap_type:
        raise error(ErrorCode.INVALID_POOL_ADDRESS, pool_address)
    if not pool.enabled:
        raise error(ErrorCode.POOL_DISABLED, pool_address)
    pool.enabled = False
    ledger.emit(PoolDisabled(swap_type=swap_type, pool_address=pool.pool_address))


def add_operator(ledger: Ledger, authority: str, operator: str) -> None:
    registry = require_registry_authority(ledger, authority)
    operator = normalize_address(operator, validate=True)
    if operator in registry.operators:
        raise error(ErrorCode.OPERATOR_ALREADY_EXISTS, operator)
    if len(registry.operators) >= ledger.config.max_operators:
        raise error(ErrorCode.OPERATOR_LIMIT_REACHED)
    registry.operators.append(operator)
    ledger.emit(OperatorAdded(operator=operator))


def remove_operator(ledger: Ledger, authority: str, operator: str) -> None:
    registry = require_registry_authority(ledger, authority)
    operator = normalize_address(operator, validate=True)
    if operator not in registry.operators:
        raise error(ErrorCode.OPERATOR_NOT_FOUND, operator)
    registry.operators.remove(operator)
    ledger.emit(OperatorRemoved(operator=operator))


def change_authority(ledger: Ledger, authority: str, new_authority: str) -> None:
    """Transfer registry ownership in a single step."""
    registry = require_registry_authority(ledger, authority)
    new_authority = normalize_address(new_authority, validate=True)
    ledger.emit(AuthorityChanged(old_authority=registry.authority, new_authority=new_authority))
    registry.authority = new_authority


def reset_adapter_registry(
    ledger: Ledger, authority: str, adapters: list[AdapterInfo], operators: list[str]
) -> None:
    """Replace the adapter and operator lists wholesale."""
    registry = require_registry_authority(ledger, authority)
    operators = [normalize_address(op, validate=True) for op in operators]
    _check_capacity(ledger.config, adapters, operators)
    registry.adapters = list(adapters)
    registry.operators = operators
    ledger.emit(
        RegistryReset(authority=registry.authority, adapter_count=len(adapters), operator_count=len(operators))
    )


def migrate_adapter_registry(ledger: Ledger, authority: str) -> int:
    """Re-run schema migrations on the stored registry; returns the resulting version."""
    registry = require_registry_authority(ledger, authority)
    migrated = AdapterRegistry.model_validate(
        migrate("AdapterRegistry", registry.model_dump(mode="json"), ledger.config)
    )
    ledger.get_account(derive_adapter_registry_address(ledger.config.program_id)).data = migrated
    return migrated.schema_version


__all__ = [
    "initialize_adapter_registry",
    "configure_adapter",
    "disable_adapter",
    "initialize_pool_info",
    "disable_pool",
    "add_operator",
    "remove_operator",
    "change_authority",
    "reset_adapter_registry",
    "migrate_adapter_registry",
]
