import httpx
import pytest

from healcoin_ledger.main import create_app


@pytest.fixture
async def client(container):
    app = create_app(container)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestWalletRoutes:

    async def test_balance_of_new_wallet(self, client):
        response = await client.get("/api/wallet/acct-1")
        assert response.status_code == 200
        assert response.json()["heal_coin_balance"] == 0

    async def test_earn_then_list(self, client, clock):
        response = await client.post("/api/wallet/acct-1/earn", json={"amount": 30, "source": "game:quiz"})
        assert response.status_code == 200
        body = response.json()
        assert body["balance"] == 30
        assert body["replayed"] is False

        response = await client.get("/api/wallet/acct-1/transactions", params={"page": 1, "limit": 10})
        listing = response.json()
        assert listing["total"] == 1
        assert listing["transactions"][0]["id"] == body["transaction_id"]
        assert listing["has_next"] is False

    async def test_idempotency_header(self, client):
        payload = {"amount": 30, "source": "game:quiz"}
        headers = {"Idempotency-Key": "req-42"}
        first = await client.post("/api/wallet/acct-1/earn", json=payload, headers=headers)
        second = await client.post("/api/wallet/acct-1/earn", json=payload, headers=headers)

        assert second.json()["replayed"] is True
        assert second.json()["transaction_id"] == first.json()["transaction_id"]

    async def test_cap_rejection_envelope(self, client):
        response = await client.post("/api/wallet/acct-1/earn", json={"amount": 1001, "source": "marathon"})

        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "CAP_EXCEEDED"
        assert body["error"]["message"] == "Transaction would exceed daily limit of 1000"
        assert "timestamp" in body

    async def test_request_validation_envelope(self, client):
        response = await client.post("/api/wallet/acct-1/earn", json={"amount": 0, "source": "steps"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_insufficient_balance(self, client):
        response = await client.post("/api/wallet/acct-1/redeem", json={"amount": 10})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INSUFFICIENT_BALANCE"

    async def test_refund_and_limits(self, client):
        await client.post("/api/wallet/acct-1/earn", json={"amount": 200, "source": "steps"})
        response = await client.post("/api/wallet/acct-1/refund", json={"amount": 50, "reason": "Order cancelled"})
        assert response.json()["balance"] == 250

        limits = (await client.get("/api/wallet/acct-1/limits")).json()
        assert limits["daily_earned"] == 200
        assert limits["daily_earn_remaining"] == 800


class TestSecurityRoutes:

    async def test_login_geo_anomaly(self, client, clock):
        await client.post("/api/security/acct-1/logins", json={"device_id": "phone", "ip_address": "10.0.0.1"})
        clock.advance(minutes=10)
        response = await client.post(
            "/api/security/acct-1/logins", json={"device_id": "phone", "ip_address": "172.16.0.9"}
        )

        assert response.status_code == 200
        assert response.json()["signal"] == {"is_suspicious": True, "reason": "Geographic anomaly detected"}


class TestAdminRoutes:

    async def test_audit_listing_verify_and_reverse(self, client, clock):
        await client.post("/api/wallet/acct-1/earn", json={"amount": 50, "source": "x"})
        clock.advance(minutes=1)

        listing = (await client.get("/api/admin/audit-logs", params={"entity_id": "acct-1"})).json()
        assert listing["total"] == 1
        entry = listing["entries"][0]
        assert entry["action_type"] == "walletUpdate"

        response = await client.post(f"/api/admin/audit-logs/{entry['id']}/reverse", headers={"X-Actor-Id": "admin-7"})
        assert response.status_code == 200
        assert response.json()["wallet"]["heal_coin_balance"] == 0

        report = (await client.get("/api/admin/audit-logs/verify", params={"entity_id": "acct-1"})).json()
        assert report == {"entity_id": "acct-1", "checked": 2, "valid": True, "errors": []}

        again = await client.post(f"/api/admin/audit-logs/{entry['id']}/reverse", headers={"X-Actor-Id": "admin-7"})
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "NOT_REVERSIBLE"

    async def test_reverse_requires_actor(self, client):
        response = await client.post("/api/admin/audit-logs/anything/reverse")
        assert response.status_code == 400

    async def test_unknown_audit_entry(self, client):
        response = await client.post("/api/admin/audit-logs/missing/reverse", headers={"X-Actor-Id": "admin-7"})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["environment"] == "test"
