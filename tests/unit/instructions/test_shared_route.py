"""Tests for routes and order fills through the trusted aggregator."""

import pytest

from flipper.errors import AccountNotFound, ErrorCode, ExecutionError, ValidationError
from flipper.events import RouterSwapEvent
from flipper.host.addresses import address_for
from flipper.host.instruction import AccountMeta
from flipper.models.accounts import OrderStatus
from tests.helpers import (
    ADMIN,
    AGGREGATOR_PROGRAM,
    OPERATOR,
    USER,
    USER_BALANCE,
    encode_aggregator_route,
    make_params,
    make_terms,
)


@pytest.fixture
def trusted(market):
    """The market with the aggregator recorded on the vault authority."""
    market.world.program.set_aggregator_program(ADMIN, AGGREGATOR_PROGRAM)
    return market


def sol_to_usdc_accounts(market, source=None, destination=None):
    world = market.world
    reserve_in, reserve_out = world.aggregator_reserves(market.sol, market.usdc)
    return world.aggregator_accounts(
        source or market.sol_vault, destination or market.usdc_vault, reserve_in, reserve_out
    )


def shared_swap(market, accounts, data=None, program_id=AGGREGATOR_PROGRAM, params=None, **kw):
    return market.world.program.shared_route(
        USER,
        market.user_sol,
        market.user_usdc,
        program_id,
        accounts,
        encode_aggregator_route(100_000_000, 90_000_000) if data is None else data,
        params or make_params(),
        **kw,
    )


class TestSharedRoute:
    def test_swap(self, trusted):
        market = trusted
        world = market.world

        outcome = shared_swap(market, sol_to_usdc_accounts(market))

        assert outcome.output_amount == 90_000_000
        assert world.aggregator.calls == [(100_000_000, 90_000_000)]
        assert world.balance(market.user_usdc) == USER_BALANCE + 90_000_000
        assert world.balance(market.user_sol) == USER_BALANCE - 100_000_000
        assert world.balance(market.sol_vault) == 0
        assert world.ledger.events_of(RouterSwapEvent)[-1].output_amount == 90_000_000

    def test_platform_fee(self, trusted):
        market = trusted
        outcome = shared_swap(
            market,
            sol_to_usdc_accounts(market),
            params=make_params(platform_fee_bps=50),
            platform_fee_account=market.fee_usdc,
        )
        assert outcome.fee_amount == 450_000
        assert market.world.balance(market.user_usdc) == USER_BALANCE + 89_550_000

    def test_under_delivery_rolls_back(self, trusted):
        market = trusted
        data = encode_aggregator_route(100_000_000, 85_000_000)
        with pytest.raises(ExecutionError) as exc_info:
            shared_swap(market, sol_to_usdc_accounts(market), data=data)
        assert exc_info.value.code == ErrorCode.SLIPPAGE_TOLERANCE_EXCEEDED
        assert market.world.balance(market.user_sol) == USER_BALANCE


class TestAggregatorChecks:
    """The account list and program id are checked before the call."""

    def test_no_aggregator_configured(self, market):
        with pytest.raises(ValidationError) as exc_info:
            shared_swap(market, sol_to_usdc_accounts(market))
        assert exc_info.value.code == ErrorCode.INVALID_AGGREGATOR_PROGRAM

    def test_untrusted_program(self, trusted):
        with pytest.raises(ValidationError) as exc_info:
            shared_swap(trusted, sol_to_usdc_accounts(trusted), program_id=address_for("program:impostor"))
        assert exc_info.value.code == ErrorCode.INVALID_AGGREGATOR_PROGRAM

    def test_empty_route_data(self, trusted):
        with pytest.raises(ValidationError) as exc_info:
            shared_swap(trusted, sol_to_usdc_accounts(trusted), data=b"")
        assert exc_info.value.code == ErrorCode.EMPTY_ROUTE

    def test_too_few_accounts(self, trusted):
        accounts = sol_to_usdc_accounts(trusted)[:12]
        with pytest.raises(ValidationError) as exc_info:
            shared_swap(trusted, accounts)
        assert exc_info.value.code == ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS

    @pytest.mark.parametrize(
        ("position", "code"),
        [
            (2, ErrorCode.AGGREGATOR_AUTHORITY_MISMATCH),
            (3, ErrorCode.AGGREGATOR_SOURCE_MISMATCH),
            (6, ErrorCode.AGGREGATOR_DESTINATION_MISMATCH),
        ],
    )
    def test_pinned_positions(self, trusted, position, code):
        accounts = sol_to_usdc_accounts(trusted)
        accounts[position] = AccountMeta.writable(address_for("somebody-else"))
        with pytest.raises(ValidationError) as exc_info:
            shared_swap(trusted, accounts)
        assert exc_info.value.code == code


class TestSharedRouteAndCreateOrder:
    """The escrow must already exist so it can be named as the aggregator's destination."""

    def test_requires_init_shell(self, trusted):
        market = trusted
        escrow = market.world.program.order_vault_address(market.world.program.limit_order_address(USER, 1))
        accounts = sol_to_usdc_accounts(market, destination=escrow)
        with pytest.raises(AccountNotFound):
            market.world.program.shared_route_and_create_order(
                USER,
                1,
                market.user_sol,
                market.user_sol,
                AGGREGATOR_PROGRAM,
                accounts,
                encode_aggregator_route(100_000_000, 90_000_000),
                make_params(),
                make_terms(),
            )

    def test_opens_order(self, trusted):
        market = trusted
        world = market.world
        order = world.program.init_limit_order(USER, 1, market.usdc)
        escrow = world.program.order_vault_address(order)

        created, outcome = world.program.shared_route_and_create_order(
            USER,
            1,
            market.user_sol,
            market.user_sol,
            AGGREGATOR_PROGRAM,
            sol_to_usdc_accounts(market, destination=escrow),
            encode_aggregator_route(100_000_000, 90_000_000),
            make_params(),
            make_terms(),
        )

        assert created == order
        assert outcome.net_amount == 90_000_000
        record = world.program.limit_order(order)
        assert record.status == OrderStatus.OPEN
        assert record.input_amount == 90_000_000
        assert record.output_mint == market.sol
        assert world.balance(escrow) == 90_000_000


class TestSharedExecute:
    """Filling a SOL -> USDC order through the aggregator."""

    @pytest.fixture
    def order(self, trusted):
        program = trusted.world.program
        program.init_limit_order(USER, 1, trusted.sol)
        return program.create_limit_order(
            USER, 1, 50_000_000, make_terms(), trusted.usdc, trusted.user_sol, trusted.user_usdc
        )

    def fill(self, market, order, accounts):
        return market.world.program.shared_execute_limit_order(
            OPERATOR,
            order,
            AGGREGATOR_PROGRAM,
            accounts,
            encode_aggregator_route(50_000_000, 50_000_000),
            50_000_000,
            0,
            market.user_usdc,
        )

    def test_fill(self, trusted, order):
        market = trusted
        world = market.world
        escrow = world.program.order_vault_address(order)

        outcome = self.fill(market, order, sol_to_usdc_accounts(market, source=escrow))

        assert outcome.net_amount == 50_000_000
        assert world.balance(market.user_usdc) == USER_BALANCE + 50_000_000
        assert not world.ledger.exists(order)

    def test_source_must_be_escrow(self, trusted, order):
        market = trusted
        with pytest.raises(ValidationError) as exc_info:
            self.fill(market, order, sol_to_usdc_accounts(market))
        assert exc_info.value.code == ErrorCode.AGGREGATOR_SOURCE_MISMATCH
        assert market.world.program.limit_order(order).status == OrderStatus.OPEN
