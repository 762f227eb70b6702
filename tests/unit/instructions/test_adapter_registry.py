"""Tests for the adapter registry, operator set and PoolInfo records."""

import pytest

from flipper.errors import (
    AccountAlreadyExists,
    AuthorizationError,
    ConfigurationError,
    ErrorCode,
    LifecycleError,
)
from flipper.events import AdapterConfigured, OperatorAdded, PoolInitialized
from flipper.host.addresses import address_for
from flipper.models.accounts import AdapterInfo, SwapKind
from tests.helpers import ADMIN, OPERATOR, OTHER_USER, RAYDIUM_PROGRAM, STRANGER, default_adapters

POOL = address_for("pool:registry-test")
NEW_PROGRAM = address_for("program:raydium-v2")


class TestInitialize:
    def test_initial_contents(self, world):
        registry = world.program.adapter_registry()
        assert registry.authority == ADMIN
        assert registry.operators == [OPERATOR]
        assert [adapter.swap_type for adapter in registry.adapters] == [
            SwapKind.RAYDIUM,
            SwapKind.WHIRLPOOL,
            SwapKind.METEORA,
        ]
        assert registry.schema_version == 2

    def test_second_initialize_rejected(self, world):
        with pytest.raises(LifecycleError) as exc_info:
            world.program.initialize_adapter_registry(ADMIN, [], [])
        assert exc_info.value.code == ErrorCode.ALREADY_INITIALIZED

    def test_duplicate_venue_types_rejected(self, bare_world):
        adapters = default_adapters() + default_adapters()[:1]
        with pytest.raises(ConfigurationError) as exc_info:
            bare_world.program.initialize_adapter_registry(ADMIN, adapters, [])
        assert exc_info.value.code == ErrorCode.DUPLICATE_ADAPTER

    def test_operator_capacity(self, bare_world):
        operators = [address_for(f"operator:{i}") for i in range(11)]
        with pytest.raises(ConfigurationError) as exc_info:
            bare_world.program.initialize_adapter_registry(ADMIN, [], operators)
        assert exc_info.value.code == ErrorCode.OPERATOR_LIMIT_REACHED


class TestConfigureAdapter:
    """Tests for inserting, replacing and disabling venue entries."""

    def test_identical_entry_rejected(self, world):
        with pytest.raises(ConfigurationError) as exc_info:
            world.program.configure_adapter(OPERATOR, default_adapters()[0])
        assert exc_info.value.code == ErrorCode.DUPLICATE_ADAPTER

    def test_replace_program_id(self, world):
        """Configuring an existing venue type replaces its entry."""
        adapter = AdapterInfo(name="raydium_v2", program_id=NEW_PROGRAM, swap_type=SwapKind.RAYDIUM)
        world.program.configure_adapter(OPERATOR, adapter)
        registry = world.program.adapter_registry()
        assert len(registry.adapters) == 3
        assert registry.find_adapter(SwapKind.RAYDIUM).program_id == NEW_PROGRAM
        assert world.ledger.events_of(AdapterConfigured)[-1].program_id == NEW_PROGRAM

    def test_insert_new_type(self, world):
        adapter = AdapterInfo(name="phoenix", program_id=NEW_PROGRAM, swap_type=SwapKind.PHOENIX)
        world.program.configure_adapter(ADMIN, adapter)
        assert world.program.adapter_registry().find_adapter(SwapKind.PHOENIX) is not None

    def test_reconfigure_reenables(self, world):
        world.program.disable_adapter(OPERATOR, SwapKind.RAYDIUM)
        world.program.configure_adapter(OPERATOR, default_adapters()[0])
        assert world.program.adapter_registry().find_adapter(SwapKind.RAYDIUM).enabled

    def test_adapter_capacity(self, world):
        extra_kinds = [SwapKind.SABER, SwapKind.STEP, SwapKind.CREMA, SwapKind.ALDRIN]
        extra_kinds += [SwapKind.SERUM, SwapKind.PHOENIX, SwapKind.OPENBOOK]
        for kind in extra_kinds:
            world.program.configure_adapter(
                OPERATOR, AdapterInfo(name=kind.name.lower(), program_id=NEW_PROGRAM, swap_type=kind)
            )
        with pytest.raises(ConfigurationError) as exc_info:
            world.program.configure_adapter(
                OPERATOR, AdapterInfo(name="extra", program_id=NEW_PROGRAM, swap_type=SwapKind.DRADEX)
            )
        assert exc_info.value.code == ErrorCode.ADAPTER_LIMIT_REACHED

    def test_disable_keeps_entry(self, world):
        world.program.disable_adapter(OPERATOR, SwapKind.WHIRLPOOL)
        entry = world.program.adapter_registry().find_adapter(SwapKind.WHIRLPOOL)
        assert entry is not None
        assert not entry.enabled

    def test_disable_unknown_type(self, world):
        with pytest.raises(ConfigurationError) as exc_info:
            world.program.disable_adapter(OPERATOR, SwapKind.PHOENIX)
        assert exc_info.value.code == ErrorCode.SWAP_NOT_SUPPORTED

    def test_stranger_rejected(self, world):
        with pytest.raises(AuthorizationError) as exc_info:
            world.program.disable_adapter(STRANGER, SwapKind.RAYDIUM)
        assert exc_info.value.code == ErrorCode.INVALID_OPERATOR


class TestPoolInfo:
    """Tests for trusted-pool records."""

    def test_register_pool(self, world):
        address = world.program.initialize_pool_info(OPERATOR, SwapKind.RAYDIUM, POOL)
        assert address == world.program.pool_info_address(SwapKind.RAYDIUM, POOL)
        pool = world.program.pool_info(SwapKind.RAYDIUM, POOL)
        assert pool.pool_address == POOL
        assert pool.enabled
        assert world.ledger.events_of(PoolInitialized)[-1].pool_address == POOL

    def test_register_twice_rejected(self, world):
        world.program.initialize_pool_info(OPERATOR, SwapKind.RAYDIUM, POOL)
        with pytest.raises(AccountAlreadyExists):
            world.program.initialize_pool_info(OPERATOR, SwapKind.RAYDIUM, POOL)

    def test_same_pool_under_other_type(self, world):
        world.program.initialize_pool_info(OPERATOR, SwapKind.RAYDIUM, POOL)
        world.program.initialize_pool_info(OPERATOR, SwapKind.WHIRLPOOL, POOL)

    def test_requires_configured_adapter(self, world):
        with pytest.raises(ConfigurationError) as exc_info:
            world.program.initialize_pool_info(OPERATOR, SwapKind.PHOENIX, POOL)
        assert exc_info.value.code == ErrorCode.ADAPTER_NOT_CONFIGURED

    def test_requires_enabled_adapter(self, world):
        world.program.disable_adapter(OPERATOR, SwapKind.RAYDIUM)
        with pytest.raises(ConfigurationError) as exc_info:
            world.program.initialize_pool_info(OPERATOR, SwapKind.RAYDIUM, POOL)
        assert exc_info.value.code == ErrorCode.ADAPTER_NOT_CONFIGURED

    def test_disable_pool(self, world):
        world.program.initialize_pool_info(OPERATOR, SwapKind.RAYDIUM, POOL)
        world.program.disable_pool(OPERATOR, SwapKind.RAYDIUM, POOL)
        assert not world.program.pool_info(SwapKind.RAYDIUM, POOL).enabled

        with pytest.raises(ConfigurationError) as exc_info:
            world.program.disable_pool(OPERATOR, SwapKind.RAYDIUM, POOL)
        assert exc_info.value.code == ErrorCode.POOL_DISABLED

    def test_stranger_cannot_register(self, world):
        with pytest.raises(AuthorizationError):
            world.program.initialize_pool_info(STRANGER, SwapKind.RAYDIUM, POOL)


class TestOperators:
    """Tests for operator and authority management."""

    def test_add_and_remove(self, world):
        world.program.add_operator(ADMIN, OTHER_USER)
        assert world.program.adapter_registry().is_operator(OTHER_USER)
        assert world.ledger.events_of(OperatorAdded)[-1].operator == OTHER_USER

        world.program.remove_operator(ADMIN, OTHER_USER)
        assert not world.program.adapter_registry().is_operator(OTHER_USER)

    def test_add_existing(self, world):
        with pytest.raises(ConfigurationError) as exc_info:
            world.program.add_operator(ADMIN, OPERATOR)
        assert exc_info.value.code == ErrorCode.OPERATOR_ALREADY_EXISTS

    def test_remove_missing(self, world):
        with pytest.raises(ConfigurationError) as exc_info:
            world.program.remove_operator(ADMIN, STRANGER)
        assert exc_info.value.code == ErrorCode.OPERATOR_NOT_FOUND

    def test_limit(self, world):
        for index in range(9):
            world.program.add_operator(ADMIN, address_for(f"operator:{index}"))
        with pytest.raises(ConfigurationError) as exc_info:
            world.program.add_operator(ADMIN, OTHER_USER)
        assert exc_info.value.code == ErrorCode.OPERATOR_LIMIT_REACHED

    def test_operator_cannot_manage_operators(self, world):
        with pytest.raises(AuthorizationError) as exc_info:
            world.program.add_operator(OPERATOR, OTHER_USER)
        assert exc_info.value.code == ErrorCode.INVALID_AUTHORITY

    def test_authority_counts_as_operator(self, world):
        world.program.initialize_pool_info(ADMIN, SwapKind.RAYDIUM, POOL)

    def test_change_authority(self, world):
        world.program.change_authority(ADMIN, OTHER_USER)
        assert world.program.adapter_registry().authority == OTHER_USER
        with pytest.raises(AuthorizationError):
            world.program.add_operator(ADMIN, STRANGER)
        world.program.add_operator(OTHER_USER, STRANGER)

    def test_reset_replaces_lists(self, world):
        adapter = AdapterInfo(name="raydium_cpmm", program_id=RAYDIUM_PROGRAM, swap_type=SwapKind.RAYDIUM)
        world.program.reset_adapter_registry(ADMIN, [adapter], [OTHER_USER])
        registry = world.program.adapter_registry()
        assert registry.operators == [OTHER_USER]
        assert [entry.swap_type for entry in registry.adapters] == [SwapKind.RAYDIUM]
        assert not registry.is_operator(OPERATOR)

    def test_migrate_is_idempotent(self, world):
        assert world.program.migrate_adapter_registry(ADMIN) == 2
        assert world.program.adapter_registry().operators == [OPERATOR]
