"""Integration tests for the Stripe webhook endpoint."""

import hashlib
import hmac
import json
import time

import pytest

from creatorgate.common.config import get_settings

SECRET = "whsec_integration"


def _signed(payload: bytes, secret: str = SECRET) -> dict[str, str]:
    ts = int(time.time())
    sig = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return {"Stripe-Signature": f"t={ts},v1={sig}", "Content-Type": "application/json"}


def _checkout(user_id: str, tier: str, session_id: str = "cs_1") -> bytes:
    return json.dumps({
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": session_id,
            "client_reference_id": user_id,
            "payment_status": "paid",
            "metadata": {"tier": tier},
        }},
    }).encode()


@pytest.fixture
def signing_secret(app, monkeypatch):
    monkeypatch.setenv("CREATORGATE_STRIPE_WEBHOOK_SECRET", SECRET)
    get_settings.cache_clear()
    yield SECRET
    get_settings.cache_clear()


async def test_checkout_upgrades_and_resets(client, user_headers, signing_secret):
    await client.post("/usage/titles/increment", headers=user_headers())

    payload = _checkout("user-1", "pro")
    resp = await client.post("/webhooks/stripe", content=payload, headers=_signed(payload))
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["tier"] == "pro"
    assert data["usage_reset"] is True

    resp = await client.get("/usage/titles", headers=user_headers())
    data = resp.json()
    assert data["used"] == 0
    assert data["limit"] == 2000


async def test_redelivery_is_idempotent(client, user_headers, signing_secret):
    payload = _checkout("user-1", "basic")
    await client.post("/webhooks/stripe", content=payload, headers=_signed(payload))
    await client.post("/usage/titles/increment", headers=user_headers())

    resp = await client.post("/webhooks/stripe", content=payload, headers=_signed(payload))
    assert resp.json()["duplicate"] is True

    resp = await client.get("/usage/titles", headers=user_headers())
    assert resp.json()["used"] == 1


async def test_bad_signature(client, signing_secret):
    payload = _checkout("user-1", "pro")
    resp = await client.post(
        "/webhooks/stripe", content=payload, headers=_signed(payload, secret="wrong"),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "WEBHOOK_INVALID"


async def test_unhandled_event_acknowledged(client, signing_secret):
    payload = json.dumps({"type": "customer.created", "data": {"object": {}}}).encode()
    resp = await client.post("/webhooks/stripe", content=payload, headers=_signed(payload))
    assert resp.status_code == 200
    assert resp.json()["success"] is True


async def test_invalid_json(client):
    resp = await client.post("/webhooks/stripe", content=b"not json")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid JSON"
