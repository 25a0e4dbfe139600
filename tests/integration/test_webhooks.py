"""Storefront webhook endpoints."""

import json

import pytest

from predictearn.config import get_settings
from predictearn.orders.signature import SIGNATURE_HEADER, sign
from tests.conftest import auth_headers

ORDER = {
    "id": 7001,
    "status": "completed",
    "total": "30.00",
    "currency": "usd",
    "billing": {"email": "Shopper@Example.com", "first_name": "Sam", "last_name": "Shopper"},
}


@pytest.mark.asyncio
async def test_created_then_duplicate(client):
    first = await client.post("/api/v1/webhooks/order/created", json=ORDER)
    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["action"] == "created"

    second = await client.post("/api/v1/webhooks/order/created", json=ORDER)
    assert second.status_code == 200
    assert second.json()["action"] == "duplicate"


@pytest.mark.asyncio
async def test_malformed_payload_is_acknowledged(client):
    resp = await client.post("/api/v1/webhooks/order/created", content=b"{not json")
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert resp.json()["action"] == "ignored"

    resp = await client.post("/api/v1/webhooks/order/deleted", json={"id": "abc"})
    assert resp.status_code == 200
    assert resp.json()["action"] == "ignored"


@pytest.mark.asyncio
async def test_update_and_delete_flow(client, make_user):
    admin = await make_user(role="admin")
    await client.post("/api/v1/webhooks/order/created", json={**ORDER, "status": "processing"})

    updated = (await client.post("/api/v1/webhooks/order/updated", json=ORDER)).json()
    assert updated["action"] == "updated"
    assert updated["previous_status"] == "processing"

    deleted = (await client.post("/api/v1/webhooks/order/deleted", json={"id": ORDER["id"]})).json()
    assert deleted["action"] == "deleted"

    status = await client.get("/api/v1/webhooks/status", headers=auth_headers(admin.id, "admin"))
    assert status.status_code == 200
    assert status.json()["stats"]["total_orders"] == 1
    assert status.json()["recent_orders"][0]["status"] == "trash"


@pytest.mark.asyncio
async def test_status_requires_admin(client, make_user):
    user = await make_user()
    resp = await client.get("/api/v1/webhooks/status", headers=auth_headers(user.id))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_signature_enforced_when_secret_configured(client, monkeypatch):
    monkeypatch.setenv("PE_WEBHOOK_SECRET", "shh")
    get_settings.cache_clear()
    body = json.dumps(ORDER).encode()

    unsigned = await client.post(
        "/api/v1/webhooks/order/created", content=body, headers={"Content-Type": "application/json"}
    )
    assert unsigned.status_code == 401

    signed = await client.post(
        "/api/v1/webhooks/order/created",
        content=body,
        headers={"Content-Type": "application/json", SIGNATURE_HEADER: sign(body, "shh")},
    )
    assert signed.status_code == 200
    assert signed.json()["action"] == "created"
