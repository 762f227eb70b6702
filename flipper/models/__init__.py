"""Data models for program accounts, route plans and shared types."""

from flipper.models.accounts import (
    AdapterInfo,
    AdapterRegistry,
    GlobalManager,
    LimitOrder,
    OrderStatus,
    PoolInfo,
    Swap,
    SwapKind,
    TriggerType,
    VaultAuthority,
)
from flipper.models.route import RouteHop
from flipper.models.types import U64, Address, address_bytes, is_valid_address, normalize_address

__all__ = [
    "AdapterInfo",
    "AdapterRegistry",
    "GlobalManager",
    "LimitOrder",
    "OrderStatus",
    "PoolInfo",
    "Swap",
    "SwapKind",
    "TriggerType",
    "VaultAuthority",
    "RouteHop",
    "Address",
    "U64",
    "address_bytes",
    "is_valid_address",
    "normalize_address",
]
