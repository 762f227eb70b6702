"""Lookup from venue type to adapter strategy.

The connector replaces a match over venue types: the router asks it for the
adapter of a hop's venue and gets SWAP_NOT_SUPPORTED for venues that have
no adapter. The on-ledger AdapterRegistry decides which program a venue
type trusts; the connector decides how to talk to it.

Usage:
    connector = AdapterConnector()
    connector.register(RaydiumAdapter())
    adapter = connector.get(SwapKind.RAYDIUM)
"""

from __future__ import annotations

from flipper.adapters.base import DexAdapter
from flipper.adapters.meteora import MeteoraAdapter
from flipper.adapters.raydium import RaydiumAdapter
from flipper.adapters.whirlpool import WhirlpoolAdapter
from flipper.errors import ErrorCode, error
from flipper.models.accounts import SwapKind


class AdapterConnector:
    """Registry of adapter strategies keyed by venue type."""

    def __init__(self) -> None:
        self._adapters: dict[SwapKind, DexAdapter] = {}

    def register(self, adapter: DexAdapter) -> None:
        self._adapters[adapter.swap_kind] = adapter

    def get(self, kind: SwapKind) -> DexAdapter:
        """Return the adapter for ``kind``.

        Raises:
            ConfigurationError: SWAP_NOT_SUPPORTED if no adapter exists
        """
        adapter = self._adapters.get(kind)
        if adapter is None:
            raise error(ErrorCode.SWAP_NOT_SUPPORTED, kind.name)
        return adapter

    def is_supported(self, kind: SwapKind) -> bool:
        return kind in self._adapters

    def supported_kinds(self) -> list[SwapKind]:
        return sorted(self._adapters)


def create_default_connector() -> AdapterConnector:
    """Connector with every built-in venue adapter."""
    connector = AdapterConnector()
    connector.register(RaydiumAdapter())
    connector.register(WhirlpoolAdapter())
    connector.register(MeteoraAdapter())
    return connector


DEFAULT_CONNECTOR = create_default_connector()


def get_adapter(kind: SwapKind) -> DexAdapter:
    """Adapter for ``kind`` from the default connector."""
    return DEFAULT_CONNECTOR.get(kind)


__all__ = ["AdapterConnector", "create_default_connector", "DEFAULT_CONNECTOR", "get_adapter"]
