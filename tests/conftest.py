"""Pytest configuration and fixtures."""

import pytest

from tests.helpers import Market, World, make_market


@pytest.fixture
def world() -> World:
    """A program with its singletons, registry and venue doubles in place."""
    return World.bootstrap()


@pytest.fixture
def bare_world() -> World:
    """Venue doubles and funded wallets, but no program singletons yet."""
    return World()


@pytest.fixture
def market(world: World) -> Market:
    """SOL/USDC market on top of ``world``."""
    return make_market(world)
