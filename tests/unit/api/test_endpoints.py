"""Unit tests for the read-only API."""

import pytest
from fastapi.testclient import TestClient

from flipper import __version__
from flipper.api.endpoints import get_program
from flipper.api.main import app, status_for
from flipper.errors import ErrorCode, error
from flipper.host.addresses import address_for
from flipper.models.accounts import OrderStatus, SwapKind
from tests.helpers import ADMIN, DEFAULT_EXPIRY, USER, make_terms


@pytest.fixture
def client(world):
    """Test client serving ``world``'s program."""
    app.dependency_overrides[get_program] = lambda: world.program
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def order(market):
    program = market.world.program
    program.init_limit_order(USER, 1, market.sol)
    return program.create_limit_order(
        USER, 1, 50_000_000, make_terms(), market.usdc, market.user_sol, market.user_usdc
    )


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}


class TestAddresses:
    def test_vault_authority(self, client, world):
        response = client.get("/addresses/vault-authority")
        assert response.json() == {"address": world.program.authority_address()}

    def test_vault(self, client, world):
        mint = address_for("mint:SOL")
        response = client.get(f"/addresses/vault/{mint}")
        assert response.status_code == 200
        assert response.json()["address"] == world.program.vault_address(mint)

    def test_vault_accepts_uppercase(self, client, world):
        mint = address_for("mint:SOL")
        response = client.get(f"/addresses/vault/{mint[2:].upper()}")
        assert response.json()["address"] == world.program.vault_address(mint)

    def test_platform_fee_vault(self, client, world):
        mint = address_for("mint:USDC")
        response = client.get(f"/addresses/platform-fee/{mint}")
        assert response.status_code == 200
        assert response.json()["address"] == world.program.platform_fee_address(mint)

    def test_malformed_mint(self, client):
        response = client.get("/addresses/vault/not-an-address")
        assert response.status_code == 422


class TestRegistryAndPools:
    def test_registry(self, client):
        response = client.get("/registry")
        assert response.status_code == 200
        data = response.json()
        assert data["authority"] == ADMIN
        assert [adapter["swap_type"] for adapter in data["adapters"]] == [7, 17, 19]

    def test_registry_missing(self, bare_world):
        app.dependency_overrides[get_program] = lambda: bare_world.program
        try:
            response = TestClient(app).get("/registry")
            assert response.status_code == 404
            assert response.json()["error"] == "AccountNotFound"
        finally:
            app.dependency_overrides.clear()

    @pytest.mark.parametrize("swap_type", ["raydium", "RAYDIUM", "7"])
    def test_pool_by_name_or_number(self, client, market, swap_type):
        response = client.get(f"/pools/{swap_type}/{market.raydium.address}")
        assert response.status_code == 200
        assert response.json()["pool_address"] == market.raydium.address
        assert response.json()["swap_type"] == SwapKind.RAYDIUM

    @pytest.mark.parametrize("swap_type", ["uniswap", "99"])
    def test_unknown_swap_type(self, client, market, swap_type):
        response = client.get(f"/pools/{swap_type}/{market.raydium.address}")
        assert response.status_code == 422

    def test_unregistered_pool(self, client):
        response = client.get(f"/pools/raydium/{address_for('pool:nowhere')}")
        assert response.status_code == 404


class TestOrders:
    def test_get_order(self, client, order):
        response = client.get(f"/orders/{USER}/1")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.OPEN
        assert data["input_amount"] == 50_000_000

    def test_missing_order(self, client):
        assert client.get(f"/orders/{USER}/42").status_code == 404

    def test_should_execute(self, client, order):
        """Amounts may be sent as decimal strings."""
        response = client.post(f"/orders/{USER}/1/should-execute", json={"quoted_out_amount": "50000000"})
        assert response.status_code == 200
        data = response.json()
        assert data["order"] == order
        assert data["should_execute"] is True
        assert data["price_ratio_bps"] == 11_111
        assert data["expired"] is False

    def test_trigger_not_met(self, client, order):
        response = client.post(f"/orders/{USER}/1/should-execute", json={"quoted_out_amount": 48_000_000})
        assert response.json()["should_execute"] is False

    def test_expired_order(self, client, market, order):
        market.world.ledger.advance_clock(DEFAULT_EXPIRY)
        response = client.post(f"/orders/{USER}/1/should-execute", json={"quoted_out_amount": 50_000_000})
        data = response.json()
        assert data["should_execute"] is False
        assert data["expired"] is True

    def test_init_order(self, client, market):
        market.world.program.init_limit_order(USER, 2, market.sol)
        response = client.post(f"/orders/{USER}/2/should-execute", json={"quoted_out_amount": 1})
        data = response.json()
        assert data["should_execute"] is False
        assert data["price_ratio_bps"] is None

    def test_negative_quote_rejected(self, client, order):
        response = client.post(f"/orders/{USER}/1/should-execute", json={"quoted_out_amount": -1})
        assert response.status_code == 422


class TestErrorMapping:
    """Program error categories map to HTTP statuses."""

    @pytest.mark.parametrize(
        ("code", "status"),
        [
            (ErrorCode.INVALID_OPERATOR, 403),
            (ErrorCode.INVALID_CREATOR, 403),
            (ErrorCode.ORDER_EXPIRED, 409),
            (ErrorCode.ADAPTER_DISABLED, 409),
            (ErrorCode.SLIPPAGE_TOLERANCE_EXCEEDED, 400),
            (ErrorCode.INVALID_MINT, 400),
        ],
    )
    def test_status_for(self, code, status):
        assert status_for(error(code)) == status
