"""Tests for the vault authority, custody vaults and the global manager."""

import pytest

from flipper.constants import TOKEN_2022_PROGRAM_ID, TOKEN_ACCOUNT_SPACE
from flipper.errors import AuthorizationError, ErrorCode, LifecycleError, ValidationError
from flipper.events import PlatformFeesWithdrawn, VaultAdminChanged, VaultCreated
from flipper.models.accounts import OrderStatus
from tests.helpers import ADMIN, MANAGER, OPERATOR, OTHER_USER, STRANGER, USER, World, make_terms


class TestVaultAuthority:
    """Tests for the VaultAuthority singleton."""

    def test_created_once(self, bare_world):
        bare_world.program.create_vault_authority(ADMIN, ADMIN)
        with pytest.raises(LifecycleError) as exc_info:
            bare_world.program.create_vault_authority(ADMIN, STRANGER)
        assert exc_info.value.code == ErrorCode.ALREADY_INITIALIZED
        assert bare_world.program.vault_authority().admin == ADMIN

    def test_vaults_need_authority(self, bare_world):
        mint = bare_world.create_mint("USDC")
        with pytest.raises(LifecycleError) as exc_info:
            bare_world.program.create_vault(ADMIN, mint)
        assert exc_info.value.code == ErrorCode.VAULT_AUTHORITY_NOT_INITIALIZED

    def test_starts_at_current_schema(self, world):
        authority = world.program.vault_authority()
        assert authority.schema_version == 2
        assert authority.aggregator_program_id is None
        assert world.program.migrate_vault_authority(ADMIN) == 2

    def test_set_aggregator_admin_only(self, world):
        aggregator = world.aggregator.program_id
        with pytest.raises(AuthorizationError):
            world.program.set_aggregator_program(STRANGER, aggregator)
        world.program.set_aggregator_program(ADMIN, aggregator)
        assert world.program.vault_authority().aggregator_program_id == aggregator

    def test_admin_address_case_insensitive(self, world):
        aggregator = world.aggregator.program_id
        world.program.set_aggregator_program("0x" + ADMIN[2:].upper(), aggregator)
        assert world.program.vault_authority().aggregator_program_id == aggregator


class TestAdminRotation:
    """Only the global manager may replace the vault admin."""

    def test_manager_replaces_admin(self, world):
        world.program.change_vault_authority_admin(MANAGER, OTHER_USER)
        assert world.program.vault_authority().admin == OTHER_USER
        assert world.ledger.events_of(VaultAdminChanged)[-1].old_admin == ADMIN

        mint = world.create_mint("USDC")
        world.program.create_vault(OTHER_USER, mint)
        assert world.program.vault_exists(mint)

    def test_admin_cannot_replace_itself(self, world):
        with pytest.raises(AuthorizationError) as exc_info:
            world.program.change_vault_authority_admin(ADMIN, STRANGER)
        assert exc_info.value.code == ErrorCode.UNAUTHORIZED_GLOBAL_MANAGER

    def test_manager_must_exist(self, bare_world):
        bare_world.program.create_vault_authority(ADMIN, ADMIN)
        with pytest.raises(AuthorizationError) as exc_info:
            bare_world.program.change_vault_authority_admin(MANAGER, STRANGER)
        assert exc_info.value.code == ErrorCode.UNAUTHORIZED_GLOBAL_MANAGER

    def test_manager_handover(self, world):
        world.program.change_global_manager(MANAGER, OTHER_USER)
        with pytest.raises(AuthorizationError):
            world.program.change_vault_authority_admin(MANAGER, STRANGER)
        world.program.change_vault_authority_admin(OTHER_USER, STRANGER)
        assert world.program.vault_authority().admin == STRANGER

    def test_global_manager_created_once(self, world):
        with pytest.raises(LifecycleError):
            world.program.create_global_manager(MANAGER, STRANGER)


class TestCreateVault:
    """Tests for per-mint custody vaults."""

    def test_admin_creates_vault(self, world):
        mint = world.create_mint("USDC")
        vault = world.program.create_vault(ADMIN, mint)

        assert vault == world.vault(mint)
        account = world.ledger.token.account(vault)
        assert account.owner == world.program.authority_address()
        assert account.mint == mint
        assert account.amount == 0
        assert world.ledger.events_of(VaultCreated)[-1].vault == vault

    def test_operator_creates_vault(self, world):
        mint = world.create_mint("USDC")
        world.program.create_vault(OPERATOR, mint)
        assert world.program.vault_exists(mint)

    def test_stranger_rejected(self, world):
        mint = world.create_mint("USDC")
        with pytest.raises(AuthorizationError) as exc_info:
            world.program.create_vault(STRANGER, mint)
        assert exc_info.value.code == ErrorCode.UNAUTHORIZED_ADMIN
        assert not world.program.vault_exists(mint)

    def test_operator_needs_registry(self):
        """Without a registry only the admin qualifies."""
        world = World.bootstrap(registry=False)
        mint = world.create_mint("USDC")
        with pytest.raises(AuthorizationError):
            world.program.create_vault(OPERATOR, mint)

    def test_second_create_rejected(self, world):
        mint = world.create_mint("USDC")
        world.program.create_vault(ADMIN, mint)
        with pytest.raises(LifecycleError) as exc_info:
            world.program.create_vault(ADMIN, mint)
        assert exc_info.value.code == ErrorCode.ALREADY_INITIALIZED

    def test_initialize_vaults_creates_both(self, world):
        sol = world.create_mint("SOL", decimals=9)
        usdc = world.create_mint("USDC")
        source, destination = world.program.initialize_vaults(ADMIN, sol, usdc)
        assert source == world.vault(sol)
        assert destination == world.vault(usdc)

    def test_initialize_vaults_is_atomic(self, world):
        sol = world.create_mint("SOL", decimals=9)
        usdc = world.create_mint("USDC")
        world.program.create_vault(ADMIN, usdc)
        with pytest.raises(LifecycleError):
            world.program.initialize_vaults(ADMIN, sol, usdc)
        assert not world.program.vault_exists(sol)


class TestVaultExtensions:
    def test_extensible_mint(self, world):
        mint = world.create_mint("PYUSD", token_program=TOKEN_2022_PROGRAM_ID)
        vault = world.program.create_vault_with_extensions(ADMIN, mint, 32)
        assert world.ledger.get_account(vault).space == TOKEN_ACCOUNT_SPACE + 1 + 32
        assert world.ledger.token.program_of(vault) == TOKEN_2022_PROGRAM_ID

    def test_legacy_mint_rejects_extensions(self, world):
        mint = world.create_mint("USDC")
        with pytest.raises(ValidationError) as exc_info:
            world.program.create_vault_with_extensions(ADMIN, mint, 32)
        assert exc_info.value.code == ErrorCode.INVALID_MINT


class TestCloseVault:
    """Tests for closing vaults."""

    def test_close_empty_returns_deposit(self, world):
        mint = world.create_mint("USDC")
        vault = world.program.create_vault(ADMIN, mint)
        deposit = world.ledger.lamports(vault)
        before = world.ledger.lamports(OTHER_USER)

        assert world.program.close_vault(ADMIN, mint, OTHER_USER) == deposit
        assert world.ledger.lamports(OTHER_USER) == before + deposit
        assert not world.program.vault_exists(mint)

    def test_close_non_empty_rejected(self, world):
        mint = world.create_mint("USDC")
        vault = world.program.create_vault(ADMIN, mint)
        world.fund(vault, 1)
        with pytest.raises(LifecycleError) as exc_info:
            world.program.close_vault(ADMIN, mint, ADMIN)
        assert exc_info.value.code == ErrorCode.VAULT_NOT_EMPTY
        assert world.balance(vault) == 1

    def test_operator_cannot_close(self, world):
        mint = world.create_mint("USDC")
        world.program.create_vault(ADMIN, mint)
        with pytest.raises(AuthorizationError):
            world.program.close_vault(OPERATOR, mint, OPERATOR)


class TestWithdrawPlatformFees:
    """Tests for moving accrued fees out of authority-owned fee accounts."""

    @pytest.fixture
    def fees(self, world):
        mint = world.create_mint("USDC")
        fee_account = world.fee_account(mint)
        world.fund(fee_account, 1_000)
        destination = world.create_token_account("treasury", mint, USER)
        return mint, fee_account, destination

    def test_manager_withdraws(self, world, fees):
        _, fee_account, destination = fees
        world.program.withdraw_platform_fees(MANAGER, fee_account, destination, 400)
        assert world.balance(fee_account) == 600
        assert world.balance(destination) == 400
        assert world.ledger.events_of(PlatformFeesWithdrawn)[-1].amount == 400

    def test_admin_cannot_withdraw(self, world, fees):
        _, fee_account, destination = fees
        with pytest.raises(AuthorizationError):
            world.program.withdraw_platform_fees(ADMIN, fee_account, destination, 1)

    def test_zero_amount_rejected(self, world, fees):
        _, fee_account, destination = fees
        with pytest.raises(ValidationError) as exc_info:
            world.program.withdraw_platform_fees(MANAGER, fee_account, destination, 0)
        assert exc_info.value.code == ErrorCode.INVALID_AMOUNT

    def test_destination_mint_must_match(self, world, fees):
        _, fee_account, _ = fees
        other = world.create_mint("SOL", decimals=9)
        destination = world.create_token_account("treasury:sol", other, USER)
        with pytest.raises(ValidationError) as exc_info:
            world.program.withdraw_platform_fees(MANAGER, fee_account, destination, 1)
        assert exc_info.value.code == ErrorCode.INVALID_MINT

    def test_fee_account_must_belong_to_authority(self, world, fees):
        mint, _, destination = fees
        foreign = world.create_token_account("foreign-fees", mint, STRANGER, 10)
        with pytest.raises(ValidationError) as exc_info:
            world.program.withdraw_platform_fees(MANAGER, foreign, destination, 1)
        assert exc_info.value.code == ErrorCode.INVALID_PLATFORM_FEE_OWNER

    def test_custody_vault_refused(self, world, fees):
        mint, _, destination = fees
        vault = world.program.create_vault(ADMIN, mint)
        world.fund(vault, 1_000)
        with pytest.raises(ValidationError) as exc_info:
            world.program.withdraw_platform_fees(MANAGER, vault, destination, 1_000)
        assert exc_info.value.code == ErrorCode.INVALID_PLATFORM_FEE_OWNER
        assert world.balance(vault) == 1_000


class TestPlatformFeeVault:
    """Tests for the derived per-mint account that collects fees."""

    def test_created_at_derived_address(self, world):
        mint = world.create_mint("USDC")
        fee_vault = world.program.create_platform_fee_vault(OPERATOR, mint)
        assert fee_vault == world.program.platform_fee_address(mint)
        assert fee_vault != world.program.vault_address(mint)
        data = world.ledger.token.account(fee_vault)
        assert data.owner == world.program.authority_address()
        assert data.mint == mint

    def test_created_once(self, world):
        mint = world.create_mint("USDC")
        world.program.create_platform_fee_vault(ADMIN, mint)
        with pytest.raises(LifecycleError) as exc_info:
            world.program.create_platform_fee_vault(ADMIN, mint)
        assert exc_info.value.code == ErrorCode.ALREADY_INITIALIZED

    def test_stranger_rejected(self, world):
        mint = world.create_mint("USDC")
        with pytest.raises(AuthorizationError):
            world.program.create_platform_fee_vault(STRANGER, mint)


class TestEscrowIsNotFeeAccount:
    """An Open order's escrow holds authority-owned funds of the right mint."""

    def test_withdraw_from_escrow_refused(self, market):
        world = market.world
        program = world.program
        program.init_limit_order(USER, 1, market.sol)
        order = program.create_limit_order(
            USER, 1, 50_000_000, make_terms(), market.usdc, market.user_sol, market.user_usdc
        )
        escrow = program.order_vault_address(order)
        treasury = world.create_token_account("treasury:sol", market.sol, STRANGER)

        with pytest.raises(ValidationError) as exc_info:
            program.withdraw_platform_fees(MANAGER, escrow, treasury, 50_000_000)

        assert exc_info.value.code == ErrorCode.INVALID_PLATFORM_FEE_OWNER
        assert world.balance(escrow) == 50_000_000
        assert program.limit_order(order).status == OrderStatus.OPEN
