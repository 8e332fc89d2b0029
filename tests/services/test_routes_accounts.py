"""Account routes — users, verification codes, health, and caller identity.

Invariants:
    - Duplicate email -> 409 CONFLICT
    - Missing or malformed X-User-Id -> 401 UNAUTHENTICATED
    - A verification code verifies once
"""

import re
from uuid import uuid4

from tests.services.fakes import auth


async def test_create_user_and_get_me(client):
    res = await client.post("/api/v1/users", json={"name": "Kiran", "email": "Kiran@Example.com"})
    assert res.status_code == 201
    user = res.json()
    assert user["email"] == "kiran@example.com"
    assert user["timezone"] == "UTC"

    me = await client.get("/api/v1/users/me", headers={"X-User-Id": user["id"]})
    assert me.status_code == 200
    assert me.json()["name"] == "Kiran"


async def test_duplicate_email_conflicts(client, lender):
    res = await client.post("/api/v1/users", json={"name": "Again", "email": "ASHA@example.com"})
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "CONFLICT"


async def test_invalid_email_is_invalid_argument(client):
    res = await client.post("/api/v1/users", json={"name": "X", "email": "not-an-email"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_ARGUMENT"


async def test_missing_identity_is_unauthenticated(client):
    res = await client.get("/api/v1/users/me")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "UNAUTHENTICATED"


async def test_malformed_identity_is_unauthenticated(client):
    res = await client.get("/api/v1/users/me", headers={"X-User-Id": "asha"})
    assert res.status_code == 401


async def test_unknown_user_is_not_found(client):
    res = await client.get("/api/v1/users/me", headers={"X-User-Id": str(uuid4())})
    assert res.status_code == 404


async def test_me_for_seeded_user(client, lender):
    res = await client.get("/api/v1/users/me", headers=auth(lender))
    assert res.json()["email"] == "asha@example.com"


# ─── Verification codes ─────────────────────────────────────────

async def test_verification_code_round(client, notifier):
    body = {"email": "new@example.com", "purpose": "signup"}
    res = await client.post("/api/v1/verification/request", json=body)
    assert res.status_code == 200
    assert res.json() == {"sent": True, "expires_in_minutes": 10}

    code = re.search(r"\b(\d{6})\b", notifier.to("new@example.com")[0]["body"]).group(1)
    ok = await client.post("/api/v1/verification/verify", json={**body, "code": code})
    assert ok.status_code == 200
    assert ok.json() == {"verified": True}

    reused = await client.post("/api/v1/verification/verify", json={**body, "code": code})
    assert reused.status_code == 400
    assert reused.json()["error"]["code"] == "INVALID_ARGUMENT"


async def test_verification_request_reports_delivery_failure(client, notifier, code_store):
    notifier.fail = True
    res = await client.post(
        "/api/v1/verification/request",
        json={"email": "new@example.com", "purpose": "password_reset"},
    )
    assert res.status_code == 200
    assert res.json()["sent"] is False
    assert len(code_store) == 1


async def test_verification_unknown_purpose(client):
    res = await client.post(
        "/api/v1/verification/request", json={"email": "a@example.com", "purpose": "login"},
    )
    assert res.status_code == 400


# ─── Health ─────────────────────────────────────────────────────

async def test_liveness(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["service"] == "trustlend-api"


async def test_readiness_with_database(client):
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"]["database"] == "healthy"
