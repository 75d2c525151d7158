"""Webhook topic routing.

A closed set of topics maps to handler functions. Anything outside the set
falls through to an acknowledge-and-ignore arm so Shopify stops retrying
topics we never asked for.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.realtime_event import RealtimeEvent
from ..models.shop import Shop
from ..schemas.payloads import (
    CustomerPayload,
    DeletePayload,
    InventoryLevelPayload,
    OrderPayload,
    ProductPayload,
    parse_payload,
)
from ..services import compliance_svc, session_svc
from ..services.event_svc import EventDraft, emit_event, event_type_for
from ..services.realtime import EventBroker
from .resources import (
    delete_customer,
    delete_inventory_level,
    delete_product,
    location_name,
    upsert_customer,
    upsert_inventory_level,
    upsert_order,
    upsert_product,
)
from .transforms import customer_snapshot, inventory_snapshot, order_snapshot, product_snapshot

logger = logging.getLogger(__name__)


class Topic(str, enum.Enum):
    ORDERS_CREATE = "orders/create"
    ORDERS_UPDATED = "orders/updated"
    ORDERS_PAID = "orders/paid"
    ORDERS_CANCELLED = "orders/cancelled"
    ORDERS_FULFILLED = "orders/fulfilled"
    PRODUCTS_CREATE = "products/create"
    PRODUCTS_UPDATE = "products/update"
    PRODUCTS_DELETE = "products/delete"
    CUSTOMERS_CREATE = "customers/create"
    CUSTOMERS_UPDATE = "customers/update"
    CUSTOMERS_DELETE = "customers/delete"
    INVENTORY_LEVELS_UPDATE = "inventory_levels/update"
    INVENTORY_LEVELS_CONNECT = "inventory_levels/connect"
    INVENTORY_LEVELS_DISCONNECT = "inventory_levels/disconnect"
    APP_UNINSTALLED = "app/uninstalled"
    CUSTOMERS_DATA_REQUEST = "customers/data_request"
    CUSTOMERS_REDACT = "customers/redact"
    SHOP_REDACT = "shop/redact"

    @classmethod
    def parse(cls, value: str | None) -> "Topic | None":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None

    @property
    def is_compliance(self) -> bool:
        return self in COMPLIANCE_TOPICS


COMPLIANCE_TOPICS = frozenset(
    {Topic.CUSTOMERS_DATA_REQUEST, Topic.CUSTOMERS_REDACT, Topic.SHOP_REDACT}
)

Handler = Callable[[AsyncSession, Shop, Topic, dict[str, Any]], Awaitable[EventDraft | None]]


def _draft(topic: Topic, resource_id: uuid.UUID | None, shopify_id: int | None, snapshot: dict) -> EventDraft:
    resource_type, event_type = event_type_for(topic.value)
    return EventDraft(
        event_type=event_type,
        resource_type=resource_type,
        resource_id=resource_id,
        shopify_id=shopify_id,
        payload=snapshot,
    )


async def handle_order(db: AsyncSession, shop: Shop, topic: Topic, data: dict[str, Any]) -> EventDraft:
    payload = parse_payload(OrderPayload, data)
    local_id = await upsert_order(db, shop.id, payload)
    return _draft(topic, local_id, payload.id, order_snapshot(payload))


async def handle_product(db: AsyncSession, shop: Shop, topic: Topic, data: dict[str, Any]) -> EventDraft:
    payload = parse_payload(ProductPayload, data)
    local_id = await upsert_product(db, shop.id, payload)
    return _draft(topic, local_id, payload.id, product_snapshot(payload))


async def handle_product_delete(
    db: AsyncSession, shop: Shop, topic: Topic, data: dict[str, Any]
) -> EventDraft | None:
    payload = parse_payload(DeletePayload, data)
    deleted = await delete_product(db, shop.id, payload.id)
    if deleted is None:
        return None
    local_id, title = deleted
    return _draft(topic, local_id, payload.id, {"title": title})


async def handle_customer(db: AsyncSession, shop: Shop, topic: Topic, data: dict[str, Any]) -> EventDraft:
    payload = parse_payload(CustomerPayload, data)
    local_id = await upsert_customer(db, shop.id, payload)
    return _draft(topic, local_id, payload.id, customer_snapshot(payload))


async def handle_customer_delete(
    db: AsyncSession, shop: Shop, topic: Topic, data: dict[str, Any]
) -> EventDraft | None:
    payload = parse_payload(DeletePayload, data)
    local_id = await delete_customer(db, shop.id, payload.id)
    if local_id is None:
        return None
    return _draft(topic, local_id, payload.id, {})


async def handle_inventory_level(
    db: AsyncSession, shop: Shop, topic: Topic, data: dict[str, Any]
) -> EventDraft:
    payload = parse_payload(InventoryLevelPayload, data)
    label = await location_name(db, shop.id, payload.location_id)
    local_id = await upsert_inventory_level(db, shop.id, payload, location_label=label)
    return _draft(topic, local_id, payload.inventory_item_id, inventory_snapshot(payload, label))


async def handle_inventory_disconnect(
    db: AsyncSession, shop: Shop, topic: Topic, data: dict[str, Any]
) -> EventDraft | None:
    payload = parse_payload(InventoryLevelPayload, data)
    local_id = await delete_inventory_level(db, shop.id, payload)
    if local_id is None:
        return None
    return _draft(topic, local_id, payload.inventory_item_id, inventory_snapshot(payload))


RESOURCE_HANDLERS: dict[Topic, Handler] = {
    Topic.ORDERS_CREATE: handle_order,
    Topic.ORDERS_UPDATED: handle_order,
    Topic.ORDERS_PAID: handle_order,
    Topic.ORDERS_CANCELLED: handle_order,
    Topic.ORDERS_FULFILLED: handle_order,
    Topic.PRODUCTS_CREATE: handle_product,
    Topic.PRODUCTS_UPDATE: handle_product,
    Topic.PRODUCTS_DELETE: handle_product_delete,
    Topic.CUSTOMERS_CREATE: handle_customer,
    Topic.CUSTOMERS_UPDATE: handle_customer,
    Topic.CUSTOMERS_DELETE: handle_customer_delete,
    Topic.INVENTORY_LEVELS_UPDATE: handle_inventory_level,
    Topic.INVENTORY_LEVELS_CONNECT: handle_inventory_level,
    Topic.INVENTORY_LEVELS_DISCONNECT: handle_inventory_disconnect,
}


@dataclass
class WebhookOutcome:
    status: str  # processed, ignored, uninstalled, compliance
    topic: str
    shop_id: uuid.UUID | None = None
    event: RealtimeEvent | None = None


async def route_webhook(
    db: AsyncSession,
    topic: str,
    shop_domain: str,
    data: dict[str, Any],
    *,
    broker: EventBroker | None = None,
    log_id: uuid.UUID | None = None,
) -> WebhookOutcome:
    """Apply one verified, parsed webhook. Errors propagate to the caller."""
    parsed = Topic.parse(topic)
    if parsed is None:
        logger.info("Ignoring unhandled webhook topic %r from %s", topic, shop_domain)
        return WebhookOutcome(status="ignored", topic=topic)

    if parsed.is_compliance:
        shop_id = await compliance_svc.process_compliance(
            db, parsed.value, shop_domain, data, keep_log_id=log_id
        )
        return WebhookOutcome(status="compliance", topic=parsed.value, shop_id=shop_id)

    if parsed is Topic.APP_UNINSTALLED:
        shop = await session_svc.mark_uninstalled(db, shop_domain)
        return WebhookOutcome(
            status="uninstalled", topic=parsed.value, shop_id=shop.id if shop else None
        )

    shop = await session_svc.get_shop_by_domain(db, shop_domain)
    if shop is None:
        logger.info("Ignoring %s for unknown or inactive shop %s", parsed.value, shop_domain)
        return WebhookOutcome(status="ignored", topic=parsed.value)

    handler = RESOURCE_HANDLERS[parsed]
    draft = await handler(db, shop, parsed, data)
    await db.commit()

    event = None
    if draft is not None:
        event = await emit_event(db, shop.id, draft, broker)
    return WebhookOutcome(status="processed", topic=parsed.value, shop_id=shop.id, event=event)
