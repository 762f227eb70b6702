"""Venue adapters: one strategy per supported liquidity venue."""

from flipper.adapters.base import (
    AccountSchema,
    AccountSpec,
    AdapterContext,
    BaseAdapter,
    DexAdapter,
    SwapResult,
)
from flipper.adapters.connector import (
    DEFAULT_CONNECTOR,
    AdapterConnector,
    create_default_connector,
    get_adapter,
)
from flipper.adapters.meteora import MeteoraAdapter
from flipper.adapters.raydium import RaydiumAdapter
from flipper.adapters.whirlpool import WhirlpoolAdapter

__all__ = [
    "AccountSchema",
    "AccountSpec",
    "AdapterContext",
    "BaseAdapter",
    "DexAdapter",
    "SwapResult",
    "AdapterConnector",
    "DEFAULT_CONNECTOR",
    "create_default_connector",
    "get_adapter",
    "MeteoraAdapter",
    "RaydiumAdapter",
    "WhirlpoolAdapter",
]
