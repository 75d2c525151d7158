"""Webhook receiver tests driven through the FastAPI app."""

from __future__ import annotations

import json

import pytest
from sqlalchemy import func, select

from shopsync.models import InventoryItem, InventoryLevel, Order, Product, RealtimeEvent, Shop, WebhookLog
from shopsync.sync import handlers
from shopsync.sync.handlers import Topic

from shopsync.tests.helpers import (
    SHOP_DOMAIN,
    inventory_level_payload,
    order_payload,
    product_payload,
    sign,
    webhook_request,
)

URL = "/webhooks/shopify"


async def _count(session_factory, model) -> int:
    async with session_factory() as s:
        return (await s.execute(select(func.count(model.id)))).scalar_one()


async def _events(session_factory) -> list[RealtimeEvent]:
    async with session_factory() as s:
        stmt = select(RealtimeEvent).order_by(RealtimeEvent.created_at)
        return list((await s.execute(stmt)).scalars().all())


@pytest.mark.asyncio
async def test_bad_signature_is_rejected_without_side_effects(client, shop, session_factory):
    kwargs = webhook_request("orders/create", order_payload(), secret="wrong")
    resp = await client.post(URL, **kwargs)

    assert resp.status_code == 401
    assert await _count(session_factory, Order) == 0
    assert await _count(session_factory, WebhookLog) == 0


@pytest.mark.asyncio
async def test_missing_signature_is_rejected(client, shop):
    kwargs = webhook_request("orders/create", order_payload())
    del kwargs["headers"]["X-Shopify-Hmac-Sha256"]
    resp = await client.post(URL, **kwargs)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_signed_garbage_body_is_bad_request(client, shop):
    body = b"{not json"
    resp = await client.post(
        URL,
        content=body,
        headers={
            "X-Shopify-Topic": "orders/create",
            "X-Shopify-Shop-Domain": SHOP_DOMAIN,
            "X-Shopify-Hmac-Sha256": sign(body),
        },
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_missing_topic_header_is_bad_request(client, shop):
    kwargs = webhook_request("orders/create", order_payload())
    del kwargs["headers"]["X-Shopify-Topic"]
    resp = await client.post(URL, **kwargs)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_payload_without_id_is_bad_request(client, shop, session_factory):
    data = order_payload()
    del data["id"]
    resp = await client.post(URL, **webhook_request("orders/create", data))

    assert resp.status_code == 400
    assert await _count(session_factory, Order) == 0


@pytest.mark.asyncio
async def test_unknown_topic_is_acknowledged_and_ignored(client, shop, session_factory):
    resp = await client.post(URL, **webhook_request("carts/update", {"id": 1}))

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "status": "ignored"}
    assert await _count(session_factory, Order) == 0
    assert await _events(session_factory) == []


@pytest.mark.asyncio
async def test_order_webhook_upserts_and_emits(client, shop, session_factory):
    resp = await client.post(URL, **webhook_request("orders/create", order_payload()))

    assert resp.status_code == 200
    assert resp.json()["status"] == "processed"
    async with session_factory() as s:
        order = (await s.execute(select(Order))).scalar_one()
        log = (await s.execute(select(WebhookLog))).scalar_one()
    assert order.shop_id == shop.id
    assert log.processed is True
    assert log.shop_id == shop.id

    (event,) = await _events(session_factory)
    assert event.event_type == "order_created"
    assert event.resource_type == "order"
    assert event.resource_id == str(order.id)
    assert event.shopify_id == 1001
    assert event.payload["name"] == "#1001"
    assert event.payload["total_price"] == "49.90"


@pytest.mark.asyncio
async def test_replayed_delivery_keeps_one_record(client, shop, session_factory):
    kwargs = webhook_request("orders/paid", order_payload())
    first = await client.post(URL, **kwargs)
    second = await client.post(URL, **kwargs)

    assert first.status_code == second.status_code == 200
    assert await _count(session_factory, Order) == 1
    events = await _events(session_factory)
    assert [e.event_type for e in events] == ["order_paid", "order_paid"]


@pytest.mark.asyncio
async def test_unknown_shop_is_acknowledged(client, shop, session_factory):
    kwargs = webhook_request("orders/create", order_payload(), shop_domain="ghost.myshopify.com")
    resp = await client.post(URL, **kwargs)

    assert resp.status_code == 200
    assert resp.json()["status"] == "ignored"
    assert await _count(session_factory, Order) == 0


@pytest.mark.asyncio
async def test_product_delete_emits_title(client, shop, session_factory):
    await client.post(URL, **webhook_request("products/create", product_payload()))
    resp = await client.post(URL, **webhook_request("products/delete", {"id": 2001}))

    assert resp.status_code == 200
    assert await _count(session_factory, Product) == 0
    events = await _events(session_factory)
    assert [e.event_type for e in events] == ["product_created", "product_deleted"]
    assert events[-1].payload == {"title": "Ceramic Mug"}


@pytest.mark.asyncio
async def test_delete_of_unknown_product_emits_nothing(client, shop, session_factory):
    resp = await client.post(URL, **webhook_request("products/delete", {"id": 9999}))

    assert resp.status_code == 200
    assert await _events(session_factory) == []


@pytest.mark.asyncio
async def test_inventory_level_lifecycle(client, shop, session_factory):
    await client.post(URL, **webhook_request("inventory_levels/connect", inventory_level_payload(available=0)))
    await client.post(URL, **webhook_request("inventory_levels/update", inventory_level_payload(available=5)))

    async with session_factory() as s:
        level = (await s.execute(select(InventoryLevel))).scalar_one()
    assert level.available == 5
    assert await _count(session_factory, InventoryItem) == 1

    await client.post(URL, **webhook_request("inventory_levels/disconnect", inventory_level_payload()))
    assert await _count(session_factory, InventoryLevel) == 0

    events = await _events(session_factory)
    assert [e.event_type for e in events] == [
        "inventory_connected",
        "inventory_updated",
        "inventory_disconnected",
    ]


@pytest.mark.asyncio
async def test_app_uninstalled_deactivates_shop(client, shop, session_factory):
    resp = await client.post(URL, **webhook_request("app/uninstalled", {"id": 1, "domain": SHOP_DOMAIN}))

    assert resp.status_code == 200
    assert resp.json()["status"] == "uninstalled"
    async with session_factory() as s:
        stored = await s.get(Shop, shop.id)
    assert stored.is_active is False
    assert stored.uninstalled_at is not None

    # Later deliveries for the shop are acknowledged but not applied.
    resp = await client.post(URL, **webhook_request("orders/create", order_payload()))
    assert resp.json()["status"] == "ignored"
    assert await _count(session_factory, Order) == 0


@pytest.mark.asyncio
async def test_handler_failure_is_retryable_and_logged(client, shop, session_factory, monkeypatch):
    async def boom(db, shop, topic, data):
        raise RuntimeError("database unavailable")

    monkeypatch.setitem(handlers.RESOURCE_HANDLERS, Topic.ORDERS_CREATE, boom)
    resp = await client.post(URL, **webhook_request("orders/create", order_payload()))

    assert resp.status_code == 500
    async with session_factory() as s:
        log = (await s.execute(select(WebhookLog))).scalar_one()
    assert log.processed is False
    assert "database unavailable" in log.error_message
    assert await _events(session_factory) == []


@pytest.mark.asyncio
async def test_shop_domain_falls_back_to_body(client, shop, session_factory):
    kwargs = webhook_request("orders/create", {**order_payload(), "shop_domain": SHOP_DOMAIN})
    del kwargs["headers"]["X-Shopify-Shop-Domain"]
    resp = await client.post(URL, **kwargs)

    assert resp.status_code == 200
    assert await _count(session_factory, Order) == 1


@pytest.mark.asyncio
async def test_compliance_route_rejects_resource_topic(client, shop):
    resp = await client.post("/webhooks/shopify/compliance", **webhook_request("orders/create", order_payload()))
    assert resp.status_code == 400

    body = json.dumps({"shop_domain": SHOP_DOMAIN}).encode()
    resp = await client.post(
        "/webhooks/shopify/compliance",
        content=body,
        headers={"X-Shopify-Topic": "orders/create", "X-Shopify-Hmac-Sha256": "bogus"},
    )
    assert resp.status_code == 401
