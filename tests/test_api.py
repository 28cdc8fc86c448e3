"""Tests for the FastAPI endpoints."""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from stablevault.api.app import create_app
from stablevault.api.deps import get_vault
from stablevault.config import get_settings

ONE_NATIVE = str(10**18)


@pytest.fixture
async def test_app(vault):
    """Create test application bound to the test vault."""
    app = create_app()
    app.dependency_overrides[get_vault] = lambda: vault

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app):
    """Create async test client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _fund(client, holder: str, asset: str, amount: str):
    response = await client.post(
        "/api/v1/vault/simulate/fund",
        json={"holder": holder, "asset": asset, "amount": amount},
    )
    assert response.status_code == 200
    return response.json()


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "stablevault"

    @pytest.mark.asyncio
    async def test_detailed_health(self, client):
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["oracle"]["ok"] is True
        assert "environment" in data["config"]

    @pytest.mark.asyncio
    async def test_detailed_health_degraded(self, client, clock):
        clock.advance(3601)

        response = await client.get("/health/detailed")

        data = response.json()
        assert data["status"] == "degraded"
        assert data["oracle"]["failure"] == "stale"


class TestDepositEndpoints:
    """Tests for deposit and withdrawal endpoints."""

    @pytest.mark.asyncio
    async def test_native_deposit(self, client):
        await _fund(client, "alice", "NATIVE", ONE_NATIVE)

        response = await client.post(
            "/api/v1/vault/deposits/native", json={"depositor": "alice", "amount": ONE_NATIVE}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["normalized_amount"] == "2000000000"
        assert data["display_amount"] == "2000.000000"
        assert data["total_balance"] == "2000000000"

    @pytest.mark.asyncio
    async def test_swap_deposit(self, client):
        await _fund(client, "alice", "DAI", str(100 * 10**18))

        response = await client.post(
            "/api/v1/vault/deposits/asset",
            json={"depositor": "alice", "asset": "dai", "amount": str(100 * 10**18)},
        )

        assert response.status_code == 200
        assert response.json()["normalized_amount"] == "99700000"

    @pytest.mark.asyncio
    async def test_no_route(self, client):
        await _fund(client, "alice", "FOO", ONE_NATIVE)

        response = await client.post(
            "/api/v1/vault/deposits/asset",
            json={"depositor": "alice", "asset": "FOO", "amount": ONE_NATIVE},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "no_route_available"

    @pytest.mark.asyncio
    async def test_zero_amount(self, client):
        response = await client.post(
            "/api/v1/vault/deposits/native", json={"depositor": "alice", "amount": "0"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "zero_amount"

    @pytest.mark.asyncio
    async def test_stale_oracle(self, client, clock):
        await _fund(client, "alice", "NATIVE", ONE_NATIVE)
        clock.advance(3601)

        response = await client.post(
            "/api/v1/vault/deposits/native", json={"depositor": "alice", "amount": ONE_NATIVE}
        )

        assert response.status_code == 503
        assert response.json()["error"] == "stale_price"

    @pytest.mark.asyncio
    async def test_withdraw_more_than_balance(self, client):
        quarter = str(10**18 // 4)
        await _fund(client, "alice", "NATIVE", quarter)
        await client.post(
            "/api/v1/vault/deposits/native", json={"depositor": "alice", "amount": quarter}
        )

        response = await client.post(
            "/api/v1/vault/withdrawals/native",
            json={"depositor": "alice", "amount": str(3 * 10**17)},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "insufficient_balance"
        assert data["context"] == {"balance": "500000000", "requested": "600000000"}

    @pytest.mark.asyncio
    async def test_balances_and_withdrawal(self, client):
        await _fund(client, "bob", "USDC", "1000000000")
        await client.post(
            "/api/v1/vault/deposits/unit-of-account",
            json={"depositor": "bob", "amount": "1000000000"},
        )

        response = await client.post(
            "/api/v1/vault/withdrawals/unit-of-account",
            json={"depositor": "bob", "amount": "250000000"},
        )
        assert response.status_code == 200

        response = await client.get("/api/v1/vault/balances/bob")
        assert response.json() == {
            "depositor": "bob",
            "native": "0",
            "unit_of_account": "750000000",
            "total": "750000000",
        }

    @pytest.mark.asyncio
    async def test_receive(self, client):
        await _fund(client, "carol", "NATIVE", ONE_NATIVE)

        response = await client.post(
            "/api/v1/vault/receive", json={"depositor": "carol", "amount": ONE_NATIVE}
        )

        assert response.status_code == 200
        assert response.json()["normalized_amount"] == "2000000000"


class TestReadEndpoints:
    """Tests for routes, status and events."""

    @pytest.mark.asyncio
    async def test_route_estimate(self, client):
        response = await client.get(
            "/api/v1/vault/routes/link", params={"amount": str(10 * 10**18)}
        )

        data = response.json()
        assert data["routable"] is True
        assert data["estimated_out"] == "149101350"

    @pytest.mark.asyncio
    async def test_unroutable_asset(self, client):
        response = await client.get("/api/v1/vault/routes/FOO")
        assert response.json()["routable"] is False

    @pytest.mark.asyncio
    async def test_status_and_events(self, client):
        await _fund(client, "alice", "NATIVE", ONE_NATIVE)
        await client.post(
            "/api/v1/vault/deposits/native", json={"depositor": "alice", "amount": ONE_NATIVE}
        )

        status = (await client.get("/api/v1/vault/status")).json()
        assert status["deposit_count"] == 1
        assert status["bank_value"] == "2000000000"
        assert status["liabilities"]["native"] == "2000000000"

        events = (await client.get("/admin/events")).json()
        assert len(events) == 1
        assert events[0]["event_type"] == "deposit"
        assert events[0]["payload"]["normalized_amount"] == "2000000000"

    @pytest.mark.asyncio
    async def test_concurrent_reads_queue(self, client):
        responses = await asyncio.gather(
            client.get("/api/v1/vault/status"),
            client.get("/api/v1/vault/routes/DAI", params={"amount": str(100 * 10**18)}),
            client.get("/health/detailed"),
            client.get("/api/v1/vault/status"),
        )

        assert [r.status_code for r in responses] == [200, 200, 200, 200]


class TestAdminEndpoints:
    """Tests for owner administration."""

    @pytest.mark.asyncio
    async def test_get_config(self, client):
        response = await client.get("/admin/config")

        assert response.status_code == 200
        data = response.json()
        assert data["owner"] == "owner"
        assert data["slippage_tolerance_bps"] == 300

    @pytest.mark.asyncio
    async def test_set_slippage(self, client):
        response = await client.put("/admin/slippage", json={"bps": 150})

        assert response.status_code == 200
        assert response.json()["slippage_tolerance_bps"] == 150

    @pytest.mark.asyncio
    async def test_slippage_out_of_bounds(self, client):
        response = await client.put("/admin/slippage", json={"bps": 1001})

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_slippage_tolerance"

        config = (await client.get("/admin/config")).json()
        assert config["slippage_tolerance_bps"] == 300

    @pytest.mark.asyncio
    async def test_not_owner(self, client):
        response = await client.put("/admin/slippage", json={"bps": 100, "caller": "mallory"})

        assert response.status_code == 403
        assert response.json()["error"] == "not_owner"

    @pytest.mark.asyncio
    async def test_switch_feed(self, client):
        response = await client.put("/admin/price-feed", json={"reference": "feed-b"})

        assert response.status_code == 200
        assert response.json()["price_feed_reference"] == "feed-b"

    @pytest.mark.asyncio
    async def test_transfer_owner(self, client):
        response = await client.put("/admin/owner", json={"new_owner": "carol"})

        assert response.status_code == 200
        assert response.json()["owner"] == "carol"

    @pytest.mark.asyncio
    async def test_admin_token_enforced(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "admin_token", "secret")

        response = await client.get("/admin/config")
        assert response.status_code == 401

        response = await client.get("/admin/config", headers={"X-Admin-Token": "secret"})
        assert response.status_code == 200
