"""Role checks shared by instruction handlers.

Every check first requires the caller's signature, then compares the
caller against the explicit role field. Derived addresses are never used
as proof of authority.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flipper import state
from flipper.errors import AccountNotFound, ErrorCode, error
from flipper.models.types import normalize_address

if TYPE_CHECKING:
    from flipper.host.ledger import Ledger
    from flipper.models.accounts import AdapterRegistry, GlobalManager, VaultAuthority


def require_operator(ledger: Ledger, caller: str) -> AdapterRegistry:
    """Return the registry if ``caller`` signed and is an operator (or the authority)."""
    ledger.require_signer(caller)
    caller = normalize_address(caller, validate=True)
    registry = state.adapter_registry(ledger)
    if not registry.is_operator(caller):
        raise error(ErrorCode.INVALID_OPERATOR, caller)
    return registry


def require_registry_authority(ledger: Ledger, caller: str) -> AdapterRegistry:
    ledger.require_signer(caller)
    caller = normalize_address(caller, validate=True)
    registry = state.adapter_registry(ledger)
    if registry.authority != caller:
        raise error(ErrorCode.INVALID_AUTHORITY, caller)
    return registry


def require_admin(ledger: Ledger, caller: str) -> VaultAuthority:
    ledger.require_signer(caller)
    caller = normalize_address(caller, validate=True)
    authority = state.vault_authority(ledger)
    if authority.admin != caller:
        raise error(ErrorCode.UNAUTHORIZED_ADMIN, caller)
    return authority


def require_admin_or_operator(ledger: Ledger, caller: str) -> VaultAuthority:
    """Admin always qualifies; operators qualify once the registry exists."""
    ledger.require_signer(caller)
    caller = normalize_address(caller, validate=True)
    authority = state.vault_authority(ledger)
    if authority.admin == caller:
        return authority
    try:
        registry = state.adapter_registry(ledger)
    except AccountNotFound:
        registry = None
    if registry is None or not registry.is_operator(caller):
        raise error(ErrorCode.UNAUTHORIZED_ADMIN, caller)
    return authority


def require_global_manager(ledger: Ledger, caller: str) -> GlobalManager:
    ledger.require_signer(caller)
    caller = normalize_address(caller, validate=True)
    try:
        manager = state.global_manager(ledger)
    except AccountNotFound as err:
        raise error(ErrorCode.UNAUTHORIZED_GLOBAL_MANAGER, "global manager not initialized") from err
    if manager.manager != caller:
        raise error(ErrorCode.UNAUTHORIZED_GLOBAL_MANAGER, caller)
    return manager


__all__ = [
    "require_operator",
    "require_registry_authority",
    "require_admin",
    "require_admin_or_operator",
    "require_global_manager",
]
