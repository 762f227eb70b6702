"""Events recorded on the ledger by program operations.

Every event is appended to the ledger's event log and mirrored to the
structlog stream under its snake_case name.
"""

from __future__ import annotations

import re

from pydantic import BaseModel

from flipper.models.accounts import OrderStatus, SwapKind, TriggerType
from flipper.models.types import Address

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class Event(BaseModel):
    """Base class for ledger events."""

    @classmethod
    def event_name(cls) -> str:
        """snake_case name used as the log event, e.g. ``swap_event``."""
        return _CAMEL_BOUNDARY.sub("_", cls.__name__).lower()


# Routing


class SwapEvent(Event):
    amm: Address
    input_mint: Address
    input_amount: int
    output_mint: Address
    output_amount: int


class FeeEvent(Event):
    account: Address
    mint: Address
    amount: int


class RouterSwapEvent(Event):
    sender: Address
    recipient: Address
    input_mint: Address
    output_mint: Address
    input_amount: int
    output_amount: int
    fee_amount: int
    fee_account: Address | None = None


# Registry


class AdapterConfigured(Event):
    program_id: Address
    swap_type: SwapKind


class AdapterDisabled(Event):
    swap_type: SwapKind


class PoolInitialized(Event):
    swap_type: SwapKind
    pool_address: Address


class PoolDisabled(Event):
    swap_type: SwapKind
    pool_address: Address


class OperatorAdded(Event):
    operator: Address


class OperatorRemoved(Event):
    operator: Address


class AuthorityChanged(Event):
    old_authority: Address
    new_authority: Address


class RegistryReset(Event):
    authority: Address
    adapter_count: int
    operator_count: int


# Custody


class VaultCreated(Event):
    vault: Address
    mint: Address
    extension_space: int = 0


class VaultClosed(Event):
    vault: Address
    mint: Address
    destination: Address


class VaultAdminChanged(Event):
    old_admin: Address
    new_admin: Address


class GlobalManagerChanged(Event):
    old_manager: Address
    new_manager: Address


class PlatformFeesWithdrawn(Event):
    fee_account: Address
    destination: Address
    mint: Address
    amount: int


class AggregatorProgramSet(Event):
    program_id: Address


# Limit orders


class LimitOrderInitialized(Event):
    order: Address
    creator: Address
    nonce: int
    input_vault: Address


class LimitOrderCreated(Event):
    order: Address
    creator: Address
    input_mint: Address
    output_mint: Address
    input_amount: int
    min_output_amount: int
    trigger_price_bps: int
    trigger_type: TriggerType
    expiry: int


class LimitOrderExecuted(Event):
    order: Address
    executor: Address
    input_amount: int
    output_amount: int
    fee_amount: int


class LimitOrderClosed(Event):
    order: Address
    status: OrderStatus
    recipient: Address


__all__ = [
    "Event",
    "SwapEvent",
    "FeeEvent",
    "RouterSwapEvent",
    "AdapterConfigured",
    "AdapterDisabled",
    "PoolInitialized",
    "PoolDisabled",
    "OperatorAdded",
    "OperatorRemoved",
    "AuthorityChanged",
    "RegistryReset",
    "VaultCreated",
    "VaultClosed",
    "VaultAdminChanged",
    "GlobalManagerChanged",
    "PlatformFeesWithdrawn",
    "AggregatorProgramSet",
    "LimitOrderInitialized",
    "LimitOrderCreated",
    "LimitOrderExecuted",
    "LimitOrderClosed",
]
