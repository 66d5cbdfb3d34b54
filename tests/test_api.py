"""Tests for the FastAPI endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import ALICE, BOB, ETHER, EXCHANGE, MATIC, NATIVE, UNI, VAULT
from nftgift.api.app import create_app
from nftgift.api.deps import reset_vault
from nftgift.exchange.factory import reset_exchange
from nftgift.ledger import database
from nftgift.ledger.database import close_db, create_schema, get_engine


@pytest.fixture
async def test_app():
    """Create test application with fresh database."""
    reset_vault()
    reset_exchange()
    await create_schema(get_engine())

    app = create_app()

    yield app

    # Cleanup
    reset_vault()
    reset_exchange()
    await close_db()


@pytest.fixture
async def client(test_app):
    """Create async test client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def faucet(client: AsyncClient, asset: str, account: str, amount: int) -> None:
    response = await client.post(
        "/api/v1/assets/faucet",
        json={"asset": asset, "account": account, "amount": str(amount)},
    )
    assert response.status_code == 200


async def approve_vault(client: AsyncClient, asset: str, owner: str, amount: int) -> None:
    response = await client.post(
        "/api/v1/assets/approve",
        json={"asset": asset, "owner": owner, "spender": VAULT, "amount": str(amount)},
    )
    assert response.status_code == 200


async def create_uni_claim(client: AsyncClient, amount: int = 10 * ETHER) -> dict:
    await faucet(client, UNI, ALICE, amount)
    await approve_vault(client, UNI, ALICE, amount)
    response = await client.post(
        "/api/v1/claims",
        json={"sender": ALICE, "asset_address": UNI, "amount": str(amount)},
    )
    assert response.status_code == 200
    return response.json()


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        """Test basic health check."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "nftgift"

    @pytest.mark.asyncio
    async def test_detailed_health(self, client):
        """Test detailed health check."""
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert data["config"]["exchange"]["provider"] == "dry_run"
        assert data["config"]["vault"]["address"] == VAULT


class TestClaimEndpoints:
    """Tests for claim endpoints."""

    @pytest.mark.asyncio
    async def test_create_claim(self, client):
        """Test depositing a token through the API."""
        data = await create_uni_claim(client)

        assert data["success"] is True
        assert data["id"] == 0
        assert data["asset_address"] == UNI
        assert data["amount"] == str(10 * ETHER)
        assert data["owner"] == ALICE

        response = await client.get("/api/v1/claims/0")
        assert response.status_code == 200
        claim = response.json()
        assert claim["owner"] == ALICE
        assert claim["amount"] == str(10 * ETHER)

    @pytest.mark.asyncio
    async def test_create_native_claim(self, client):
        """Test a native deposit takes the attached payment."""
        await faucet(client, NATIVE, ALICE, ETHER)

        response = await client.post(
            "/api/v1/claims",
            json={"sender": ALICE, "asset_address": NATIVE, "native_payment": str(ETHER)},
        )

        assert response.status_code == 200
        assert response.json()["amount"] == str(ETHER)

    @pytest.mark.asyncio
    async def test_create_claim_without_allowance(self, client):
        """Test a missing allowance surfaces the rejection reason."""
        await faucet(client, UNI, ALICE, 10)

        response = await client.post(
            "/api/v1/claims",
            json={"sender": ALICE, "asset_address": UNI, "amount": "10"},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "InsufficientFundsError"
        assert "exceeds spender allowance" in data["detail"]

    @pytest.mark.asyncio
    async def test_create_claim_invalid_amount(self, client):
        """Test malformed amounts are rejected by validation."""
        response = await client.post(
            "/api/v1/claims",
            json={"sender": ALICE, "asset_address": UNI, "amount": "-5"},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_create_claim_invalid_asset(self, client):
        """Test malformed asset addresses are rejected."""
        response = await client.post(
            "/api/v1/claims",
            json={"sender": ALICE, "asset_address": "0xnope", "amount": "1"},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidAssetError"

    @pytest.mark.asyncio
    async def test_get_claim_not_found(self, client):
        """Test getting a non-existent claim."""
        response = await client.get("/api/v1/claims/99")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_liquidate_claim(self, client):
        """Test liquidating a claim pays the owner and burns it."""
        await faucet(client, MATIC, EXCHANGE, 100 * ETHER)
        await create_uni_claim(client)

        response = await client.post(
            "/api/v1/claims/0/liquidate",
            json={"sender": ALICE, "output_asset_address": MATIC, "minimum_return": "1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["liquidated"] is True
        assert data["output_asset_address"] == MATIC
        assert int(data["returned_amount"]) >= 1

        response = await client.get("/api/v1/claims/0")
        assert response.status_code == 404

        response = await client.get(f"/api/v1/assets/{MATIC}/balances/{ALICE}")
        assert response.json()["balance"] == data["returned_amount"]

    @pytest.mark.asyncio
    async def test_liquidate_unknown_claim(self, client):
        """Test liquidating an unknown claim is a no-op."""
        response = await client.post(
            "/api/v1/claims/5/liquidate",
            json={"sender": ALICE, "output_asset_address": MATIC},
        )

        assert response.status_code == 200
        assert response.json()["liquidated"] is False

    @pytest.mark.asyncio
    async def test_huge_claim_id(self, client):
        """Test ids beyond the storage range behave like unknown claims."""
        huge = 2**64

        response = await client.get(f"/api/v1/claims/{huge}")
        assert response.status_code == 404

        response = await client.post(
            f"/api/v1/claims/{huge}/liquidate",
            json={"sender": ALICE, "output_asset_address": MATIC},
        )
        assert response.status_code == 200
        assert response.json()["liquidated"] is False

    @pytest.mark.asyncio
    async def test_negative_claim_id(self, client):
        """Test a negative id is rejected as malformed."""
        response = await client.get("/api/v1/claims/-1")

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidClaimIdError"

    @pytest.mark.asyncio
    async def test_liquidate_slippage(self, client):
        """Test an unachievable minimum is a conflict and keeps the claim."""
        await faucet(client, MATIC, EXCHANGE, 100 * ETHER)
        await create_uni_claim(client)

        response = await client.post(
            "/api/v1/claims/0/liquidate",
            json={
                "sender": ALICE,
                "output_asset_address": MATIC,
                "minimum_return": str(100 * ETHER),
            },
        )

        assert response.status_code == 409
        assert response.json()["error"] == "SlippageError"
        assert (await client.get("/api/v1/claims/0")).status_code == 200

    @pytest.mark.asyncio
    async def test_liquidate_unauthorized(self, client):
        """Test a stranger cannot liquidate."""
        await create_uni_claim(client)

        response = await client.post(
            "/api/v1/claims/0/liquidate",
            json={"sender": BOB, "output_asset_address": MATIC},
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_transfer_and_approve(self, client):
        """Test moving a claim and approving an address for it."""
        await create_uni_claim(client)

        response = await client.post(
            "/api/v1/claims/0/transfer", json={"sender": ALICE, "to": BOB}
        )
        assert response.status_code == 200
        assert response.json()["owner"] == BOB

        response = await client.post(
            "/api/v1/claims/0/approve", json={"sender": BOB, "to": ALICE}
        )
        assert response.status_code == 200

        claim = (await client.get("/api/v1/claims/0")).json()
        assert claim["owner"] == BOB
        assert claim["approved"] == ALICE

        response = await client.get(f"/api/v1/owners/{BOB}/claims")
        assert response.json()["balance"] == 1
        assert response.json()["claims"] == [0]

    @pytest.mark.asyncio
    async def test_solvency(self, client):
        """Test the solvency report after a deposit."""
        await create_uni_claim(client, amount=42)

        response = await client.get("/api/v1/vault/solvency")

        assert response.status_code == 200
        data = response.json()
        assert data["vault"] == VAULT
        assert data["solvent"] is True
        assert data["assets"][UNI] == {"custody": "42", "held": "42", "surplus": "0"}


class TestLifespan:
    """Tests for the application lifespan."""

    @pytest.mark.asyncio
    async def test_lifespan_owns_database(self):
        """Test startup creates the schema and shutdown disposes the engine."""
        reset_vault()
        reset_exchange()
        await close_db()
        app = create_app()

        async with app.router.lifespan_context(app):
            assert database._engine is not None
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.get("/api/v1/claims/0")
                assert response.status_code == 404

                response = await ac.get("/api/v1/vault/solvency")
                assert response.json()["solvent"] is True

        assert database._engine is None
        reset_exchange()
