"""Mandatory compliance webhook tests."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from shopsync.models import Customer, Order, Product, RealtimeEvent, Shop, WebhookLog
from shopsync.schemas.payloads import CustomerPayload, OrderPayload, ProductPayload, parse_payload
from shopsync.services import compliance_svc
from shopsync.sync.resources import upsert_customer, upsert_order, upsert_product

from shopsync.tests.helpers import (
    SHOP_DOMAIN,
    customer_payload,
    order_payload,
    product_payload,
    webhook_request,
)


async def _seed(db, shop_id) -> None:
    await upsert_customer(db, shop_id, parse_payload(CustomerPayload, customer_payload()))
    await upsert_order(db, shop_id, parse_payload(OrderPayload, order_payload(1001)))
    await upsert_order(db, shop_id, parse_payload(OrderPayload, order_payload(1002)))
    await upsert_product(db, shop_id, parse_payload(ProductPayload, product_payload()))
    await db.commit()


async def _count(session_factory, model, *where) -> int:
    async with session_factory() as s:
        return (await s.execute(select(func.count(model.id)).where(*where))).scalar_one()


async def _logs(session_factory) -> dict[str, WebhookLog]:
    async with session_factory() as s:
        rows = (await s.execute(select(WebhookLog))).scalars().all()
    return {log.topic: log for log in rows}


@pytest.mark.asyncio
async def test_customer_redact_deletes_customer_and_scrubs_orders(client, db, shop, session_factory):
    await _seed(db, shop.id)
    payload = {
        "shop_id": 77,
        "shop_domain": SHOP_DOMAIN,
        "customer": {"id": 501, "email": "jane@example.com"},
        "orders_to_redact": [1001],
    }
    resp = await client.post("/webhooks/shopify/customers-redact", **webhook_request("customers/redact", payload))

    assert resp.status_code == 200
    assert resp.json()["status"] == "compliance"
    assert await _count(session_factory, Customer) == 0
    async with session_factory() as s:
        orders = {
            o.shopify_order_id: o
            for o in (await s.execute(select(Order))).scalars().all()
        }
    assert orders[1001].pii_redacted is True
    assert orders[1001].email is None
    assert orders[1001].customer_id is None
    assert orders[1001].shipping_address == {
        "city": "Portland",
        "province": "Oregon",
        "province_code": "OR",
        "country": "United States",
        "country_code": "US",
    }
    assert orders[1002].pii_redacted is False
    assert orders[1002].email == "jane@example.com"

    logs = await _logs(session_factory)
    assert set(logs) == {"customers/redact", "compliance/customer_redacted"}
    record = logs["compliance/customer_redacted"]
    assert record.processed is True
    assert record.shop_id == shop.id
    assert record.payload["customer_id"] == 501
    assert record.payload["customer_deleted"] is True
    assert record.payload["orders_to_redact"] == [1001]
    assert record.payload["orders_redacted"] == 1
    assert record.payload["recorded_at"]


@pytest.mark.asyncio
async def test_data_request_is_logged(client, shop, session_factory):
    payload = {
        "shop_domain": SHOP_DOMAIN,
        "customer": {"id": 501},
        "orders_requested": [1001],
        "data_request": {"id": 9},
    }
    resp = await client.post(
        "/webhooks/shopify/compliance", **webhook_request("customers/data_request", payload)
    )

    assert resp.status_code == 200
    logs = await _logs(session_factory)
    assert set(logs) == {"customers/data_request", "compliance/data_request"}
    inbound = logs["customers/data_request"]
    assert inbound.processed is True
    assert inbound.shop_id == shop.id
    record = logs["compliance/data_request"]
    assert record.shop_id == shop.id
    assert record.payload["customer_id"] == 501
    assert record.payload["orders_requested"] == [1001]
    assert record.payload["data_request_id"] == 9


@pytest.mark.asyncio
async def test_compliance_customer_without_id_is_acknowledged(client, db, shop, session_factory):
    await _seed(db, shop.id)

    resp = await client.post(
        "/webhooks/shopify/compliance",
        **webhook_request(
            "customers/data_request",
            {"shop_domain": SHOP_DOMAIN, "customer": {"email": "a@b.c"}, "orders_requested": []},
        ),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "compliance"

    resp = await client.post(
        "/webhooks/shopify/customers-redact",
        **webhook_request(
            "customers/redact",
            {"shop_domain": SHOP_DOMAIN, "customer": {"email": "jane@example.com"}, "orders_to_redact": [1002]},
        ),
    )
    assert resp.status_code == 200
    # No id to match on: the customer stays, the listed order is still scrubbed.
    assert await _count(session_factory, Customer) == 1
    logs = await _logs(session_factory)
    assert logs["compliance/customer_redacted"].payload["customer_id"] is None
    assert logs["compliance/customer_redacted"].payload["customer_deleted"] is False
    assert logs["compliance/customer_redacted"].payload["orders_redacted"] == 1
    assert logs["compliance/data_request"].payload["customer_id"] is None


@pytest.mark.asyncio
async def test_malformed_compliance_payload_is_acknowledged(client, shop, session_factory):
    resp = await client.post(
        "/webhooks/shopify/customers-redact",
        **webhook_request("customers/redact", {"shop_domain": SHOP_DOMAIN, "orders_to_redact": "all"}),
    )

    assert resp.status_code == 200
    logs = await _logs(session_factory)
    assert set(logs) == {"customers/redact"}
    assert logs["customers/redact"].processed is False
    assert logs["customers/redact"].error_message


@pytest.mark.asyncio
async def test_shop_redact_erases_everything_after_uninstall(client, db, shop, session_factory):
    await _seed(db, shop.id)
    await client.post("/webhooks/shopify", **webhook_request("orders/paid", order_payload(1001)))
    await client.post("/webhooks/shopify", **webhook_request("app/uninstalled", {"id": 77}))

    resp = await client.post(
        "/webhooks/shopify/shop-redact",
        **webhook_request("shop/redact", {"shop_id": 77, "shop_domain": SHOP_DOMAIN}),
    )

    assert resp.status_code == 200
    for model in (Shop, Order, Customer, Product, RealtimeEvent):
        assert await _count(session_factory, model) == 0
    logs = await _logs(session_factory)
    assert set(logs) == {"shop/redact", "compliance/shop_redacted"}
    assert logs["shop/redact"].processed is True
    record = logs["compliance/shop_redacted"]
    assert record.shop_id is None
    assert record.payload["shopify_shop_id"] == 77
    assert record.payload["shop_found"] is True


@pytest.mark.asyncio
async def test_compliance_failure_is_still_acknowledged(client, shop, session_factory, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("storage down")

    monkeypatch.setattr(compliance_svc, "redact_customer", boom)
    resp = await client.post(
        "/webhooks/shopify/customers-redact",
        **webhook_request("customers/redact", {"shop_domain": SHOP_DOMAIN, "customer": {"id": 1}}),
    )

    assert resp.status_code == 200
    async with session_factory() as s:
        log = (await s.execute(select(WebhookLog))).scalar_one()
    assert "storage down" in log.error_message


@pytest.mark.asyncio
async def test_compliance_for_unknown_shop(db, session_factory):
    assert await compliance_svc.redact_customer(db, "ghost.myshopify.com", {"customer": {"id": 1}}) is None
    await compliance_svc.redact_shop(db, "ghost.myshopify.com", {})

    logs = await _logs(session_factory)
    assert set(logs) == {"compliance/shop_redacted"}
    assert logs["compliance/shop_redacted"].payload["shop_found"] is False
