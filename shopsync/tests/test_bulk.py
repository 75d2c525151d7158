"""Bulk synchronizer tests against a faked Shopify Admin API."""

from __future__ import annotations

import uuid

import httpx
import pytest
from sqlalchemy import func, select

from shopsync.errors import ShopifyAPIError, ShopNotFoundError
from shopsync.models import Customer, InventoryLevel, Location, Order, Product, Shop, SyncLog
from shopsync.sync.bulk import RESOURCE_ORDER, SCOPE_DENIED_MESSAGE, run_bulk_sync

from shopsync.tests.helpers import (
    FakeShopify,
    customer_payload,
    inventory_level_payload,
    location_payload,
    order_payload,
    page,
    product_payload,
)

FORBIDDEN = httpx.Response(403, json={"errors": "This app is not approved to access the Customer object."})


def _routes(**overrides) -> dict:
    routes = {
        "/locations.json": [page("locations", [location_payload()])],
        "/products.json": [
            page("products", [product_payload(2001), product_payload(2002)], next_cursor="p2"),
            page("products", [product_payload(2003)]),
        ],
        "/customers.json": [page("customers", [customer_payload(501)])],
        "/orders.json": [page("orders", [order_payload(1001), order_payload(1002)])],
        "/inventory_levels.json": [page("inventory_levels", [inventory_level_payload()])],
    }
    routes.update(overrides)
    return routes


async def _count(session_factory, model) -> int:
    async with session_factory() as s:
        return (await s.execute(select(func.count(model.id)))).scalar_one()


async def _ledger(session_factory, run_id) -> dict[str, SyncLog]:
    async with session_factory() as s:
        rows = (await s.execute(select(SyncLog).where(SyncLog.run_id == run_id))).scalars().all()
    return {row.resource_type: row for row in rows}


@pytest.mark.asyncio
async def test_full_sync_populates_every_kind(db, shop, session_factory, settings):
    fake = FakeShopify(_routes())
    report = await run_bulk_sync(db, shop.id, settings=settings, transport=fake.transport)

    assert report.statuses == {kind: "completed" for kind in RESOURCE_ORDER}
    assert report.counts == {"locations": 1, "products": 3, "customers": 1, "orders": 2, "inventory": 1}
    assert not report.partial
    assert await _count(session_factory, Location) == 1
    assert await _count(session_factory, Product) == 3
    assert await _count(session_factory, Order) == 2

    ledger = await _ledger(session_factory, report.run_id)
    assert set(ledger) == set(RESOURCE_ORDER)
    assert all(e.status == "completed" and e.completed_at is not None for e in ledger.values())
    assert ledger["products"].records_synced == 3

    async with session_factory() as s:
        level = (await s.execute(select(InventoryLevel))).scalar_one()
        order = (await s.execute(select(Order).where(Order.shopify_order_id == 1001))).scalar_one()
        stored_shop = await s.get(Shop, shop.id)
    assert level.location_name == "Warehouse"
    assert order.customer_id is not None
    assert stored_shop.last_sync_at is not None

    # Orders carry the window filter on the first page only.
    (orders_call,) = fake.calls("/orders.json")
    assert orders_call.url.params["status"] == "any"
    assert "created_at_min" in orders_call.url.params
    assert fake.calls("/inventory_levels.json")[0].url.params["location_ids"] == "601"


@pytest.mark.asyncio
async def test_scope_denied_orders_degrade_gracefully(db, shop, session_factory, settings):
    fake = FakeShopify(_routes(**{"/orders.json": [FORBIDDEN]}))
    report = await run_bulk_sync(db, shop.id, settings=settings, transport=fake.transport)

    assert report.statuses["orders"] == "failed"
    assert report.errors == {"orders": SCOPE_DENIED_MESSAGE}
    assert report.partial
    for kind in ("locations", "products", "customers", "inventory"):
        assert report.statuses[kind] == "completed"

    ledger = await _ledger(session_factory, report.run_id)
    assert ledger["orders"].status == "failed"
    assert ledger["orders"].error_message == SCOPE_DENIED_MESSAGE
    assert ledger["inventory"].status == "completed"
    assert await _count(session_factory, Order) == 0
    assert await _count(session_factory, Product) == 3


@pytest.mark.asyncio
async def test_scope_denied_customers_and_orders(db, shop, session_factory, settings):
    fake = FakeShopify(_routes(**{"/customers.json": [FORBIDDEN], "/orders.json": [FORBIDDEN]}))
    report = await run_bulk_sync(db, shop.id, settings=settings, transport=fake.transport)

    assert set(report.errors) == {"customers", "orders"}
    assert report.statuses["inventory"] == "completed"
    assert await _count(session_factory, Customer) == 0


@pytest.mark.asyncio
async def test_rerun_is_idempotent(db, shop, session_factory, settings):
    fake = FakeShopify(_routes())
    first = await run_bulk_sync(db, shop.id, settings=settings, transport=fake.transport)
    counts = {m.__name__: await _count(session_factory, m) for m in (Location, Product, Customer, Order)}

    second = await run_bulk_sync(db, shop.id, settings=settings, transport=FakeShopify(_routes()).transport)
    again = {m.__name__: await _count(session_factory, m) for m in (Location, Product, Customer, Order)}

    assert counts == again
    assert first.run_id != second.run_id
    assert await _count(session_factory, SyncLog) == 2 * len(RESOURCE_ORDER)


@pytest.mark.asyncio
async def test_upstream_failure_aborts_the_run(db, shop, session_factory, settings):
    fake = FakeShopify(_routes(**{"/products.json": [httpx.Response(500, text="boom")]}))

    with pytest.raises(ShopifyAPIError):
        await run_bulk_sync(db, shop.id, settings=settings, transport=fake.transport)

    async with session_factory() as s:
        rows = (await s.execute(select(SyncLog))).scalars().all()
        stored_shop = await s.get(Shop, shop.id)
    ledger = {row.resource_type: row for row in rows}
    assert ledger["locations"].status == "completed"
    assert ledger["products"].status == "failed"
    for kind in ("customers", "orders", "inventory"):
        assert ledger[kind].status == "failed"
        assert ledger[kind].error_message == "Aborted: products sync failed"
    assert not fake.calls("/orders.json")
    assert stored_shop.last_sync_at is None


@pytest.mark.asyncio
async def test_scope_denied_on_catalog_is_fatal(db, shop, session_factory, settings):
    fake = FakeShopify(_routes(**{"/products.json": [FORBIDDEN]}))

    with pytest.raises(ShopifyAPIError):
        await run_bulk_sync(db, shop.id, settings=settings, transport=fake.transport)

    async with session_factory() as s:
        running = (
            await s.execute(select(func.count(SyncLog.id)).where(SyncLog.status == "running"))
        ).scalar_one()
    assert running == 0


@pytest.mark.asyncio
async def test_unknown_shop_creates_no_ledger_entries(db, session_factory, settings):
    with pytest.raises(ShopNotFoundError):
        await run_bulk_sync(db, uuid.uuid4(), settings=settings, transport=FakeShopify({}).transport)

    assert await _count(session_factory, SyncLog) == 0
