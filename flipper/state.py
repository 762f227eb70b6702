"""Typed access to the program's accounts on a ledger, plus state snapshots.

``dump_state`` turns a ledger into plain dicts (JSON-serializable);
``load_state`` rebuilds a ledger from them, running schema migrations on
every versioned account exactly once on the way in.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel

from flipper.addresses import (
    derive_adapter_registry_address,
    derive_authority_address,
    derive_global_manager_address,
)
from flipper.config import DEFAULT_CONFIG, FlipperConfig
from flipper.errors import AccountNotFound, ErrorCode, InvalidAccountData, error
from flipper.host.ledger import Account, Ledger
from flipper.host.token import Mint, TokenAccount
from flipper.migrations import migrate
from flipper.models.accounts import (
    AdapterRegistry,
    GlobalManager,
    LimitOrder,
    PoolInfo,
    VaultAuthority,
)

logger = structlog.get_logger()

ACCOUNT_KINDS: dict[str, type[BaseModel]] = {
    model.__name__: model
    for model in (VaultAuthority, GlobalManager, AdapterRegistry, PoolInfo, LimitOrder, Mint, TokenAccount)
}


def vault_authority(ledger: Ledger) -> VaultAuthority:
    """The VaultAuthority singleton.

    Raises:
        LifecycleError: VAULT_AUTHORITY_NOT_INITIALIZED if it was never created
    """
    program_id = ledger.config.program_id
    try:
        return ledger.read(derive_authority_address(program_id), VaultAuthority, owner=program_id)
    except AccountNotFound as err:
        raise error(ErrorCode.VAULT_AUTHORITY_NOT_INITIALIZED) from err


def adapter_registry(ledger: Ledger) -> AdapterRegistry:
    program_id = ledger.config.program_id
    return ledger.read(derive_adapter_registry_address(program_id), AdapterRegistry, owner=program_id)


def global_manager(ledger: Ledger) -> GlobalManager:
    program_id = ledger.config.program_id
    return ledger.read(derive_global_manager_address(program_id), GlobalManager, owner=program_id)


def limit_order(ledger: Ledger, address: str) -> LimitOrder:
    return ledger.read(address, LimitOrder, owner=ledger.config.program_id)


def pool_info(ledger: Ledger, address: str) -> PoolInfo:
    return ledger.read(address, PoolInfo, owner=ledger.config.program_id)


def dump_state(ledger: Ledger) -> dict[str, Any]:
    """Snapshot a ledger's accounts and clock as plain data.

    Program registrations are code, not state, and are not included.
    """
    accounts: dict[str, Any] = {}
    for address in ledger.addresses():
        account = ledger.get_account(address)
        if isinstance(account.data, BaseModel):
            kind, data = type(account.data).__name__, account.data.model_dump(mode="json")
        elif isinstance(account.data, bytes):
            kind, data = "bytes", account.data.hex()
        elif account.data is None:
            kind, data = None, None
        else:
            raise InvalidAccountData(f"Cannot serialize {type(account.data).__name__} at {address}")
        accounts[address] = {
            "owner": account.owner,
            "lamports": account.lamports,
            "space": account.space,
            "kind": kind,
            "data": data,
        }
    return {"clock": ledger.clock, "accounts": accounts}


def load_state(snapshot: dict[str, Any], config: FlipperConfig = DEFAULT_CONFIG) -> Ledger:
    """Rebuild a ledger from ``dump_state`` output, migrating old schemas."""
    ledger = Ledger(config=config, clock=snapshot.get("clock", 0))
    for address, raw in snapshot["accounts"].items():
        kind = raw.get("kind")
        data: Any = raw.get("data")
        if kind == "bytes":
            data = bytes.fromhex(data)
        elif kind is not None:
            model = ACCOUNT_KINDS.get(kind)
            if model is None:
                raise InvalidAccountData(f"Unknown account kind {kind} at {address}")
            data = model.model_validate(migrate(kind, data, config))
        ledger.put_account(
            address,
            Account(owner=raw["owner"], lamports=raw["lamports"], space=raw.get("space", 0), data=data),
        )
    logger.info("state_loaded", accounts=len(snapshot["accounts"]), clock=ledger.clock)
    return ledger


__all__ = [
    "ACCOUNT_KINDS",
    "vault_authority",
    "adapter_registry",
    "global_manager",
    "limit_order",
    "pool_info",
    "dump_state",
    "load_state",
]
