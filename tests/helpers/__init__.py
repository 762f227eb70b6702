"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Wallet and program addresses, common amounts
- venues: Venue and aggregator program doubles
- world: A bootstrapped program with venues and pools
- factories: Markets, route params and order terms
"""

from tests.helpers.constants import (
    ADMIN,
    AGGREGATOR_PROGRAM,
    FUNDER,
    MANAGER,
    METEORA_PROGRAM,
    OPERATOR,
    OTHER_USER,
    RAYDIUM_PROGRAM,
    STRANGER,
    USER,
    USER_BALANCE,
    WHIRLPOOL_PROGRAM,
)
from tests.helpers.factories import DEFAULT_EXPIRY, Market, make_market, make_params, make_terms
from tests.helpers.venues import MockAggregator, MockPool, encode_aggregator_route
from tests.helpers.world import PoolHandle, World, default_adapters

__all__ = [
    # Constants
    "ADMIN",
    "MANAGER",
    "OPERATOR",
    "USER",
    "OTHER_USER",
    "FUNDER",
    "STRANGER",
    "USER_BALANCE",
    "RAYDIUM_PROGRAM",
    "WHIRLPOOL_PROGRAM",
    "METEORA_PROGRAM",
    "AGGREGATOR_PROGRAM",
    # Doubles
    "MockPool",
    "MockAggregator",
    "encode_aggregator_route",
    # World
    "World",
    "PoolHandle",
    "default_adapters",
    # Factories
    "Market",
    "make_market",
    "make_params",
    "make_terms",
    "DEFAULT_EXPIRY",
]
