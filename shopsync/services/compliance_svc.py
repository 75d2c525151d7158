"""Mandatory compliance webhooks: data requests and erasure."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    Customer,
    InventoryItem,
    InventoryLevel,
    Location,
    Order,
    Product,
    RealtimeEvent,
    Shop,
    SyncLog,
    WebhookLog,
)
from ..schemas.payloads import (
    CustomerRedactPayload,
    DataRequestPayload,
    ShopRedactPayload,
    parse_payload,
)
from ..sync.resources import detach_orders
from ..sync.transforms import utcnow
from .redaction_svc import scrub_order
from .session_svc import get_shop_by_domain

logger = logging.getLogger(__name__)

# Children before parents.
_SHOP_TABLES = (
    RealtimeEvent,
    SyncLog,
    InventoryLevel,
    InventoryItem,
    Order,
    Customer,
    Product,
    Location,
)

DATA_REQUEST_TOPIC = "compliance/data_request"
CUSTOMER_REDACTED_TOPIC = "compliance/customer_redacted"
SHOP_REDACTED_TOPIC = "compliance/shop_redacted"


def _record(
    db: AsyncSession,
    topic: str,
    shop_domain: str,
    summary: dict[str, Any],
    shop_id: uuid.UUID | None = None,
) -> None:
    """Add a processed log row describing what a compliance request did."""
    now = utcnow()
    db.add(
        WebhookLog(
            id=uuid.uuid4(),
            shop_id=shop_id,
            shop_domain=shop_domain,
            topic=topic,
            payload={**summary, "recorded_at": now.isoformat()},
            processed=True,
            received_at=now,
        )
    )


async def handle_data_request(
    db: AsyncSession, shop_domain: str, data: dict[str, Any]
) -> uuid.UUID | None:
    payload = parse_payload(DataRequestPayload, data)
    shop = await get_shop_by_domain(db, shop_domain, include_inactive=True)
    customer = payload.customer
    summary = {
        "customer_id": customer.id if customer else None,
        "orders_requested": payload.orders_requested,
        "data_request_id": (payload.data_request or {}).get("id"),
    }
    _record(db, DATA_REQUEST_TOPIC, shop_domain, summary, shop.id if shop else None)
    await db.commit()
    logger.info(
        "Customer data request for %s: customer=%s orders=%d request=%s",
        shop_domain,
        summary["customer_id"],
        len(payload.orders_requested),
        summary["data_request_id"],
    )
    return shop.id if shop else None


async def redact_customer(
    db: AsyncSession, shop_domain: str, data: dict[str, Any]
) -> uuid.UUID | None:
    payload = parse_payload(CustomerRedactPayload, data)
    shop = await get_shop_by_domain(db, shop_domain, include_inactive=True)
    if shop is None:
        logger.info("customers/redact for unknown shop %s", shop_domain)
        return None

    deleted = False
    customer_id = payload.customer.id if payload.customer else None
    if customer_id is not None:
        stmt = select(Customer).where(
            Customer.shop_id == shop.id,
            Customer.shopify_customer_id == customer_id,
        )
        customer = (await db.execute(stmt)).scalar_one_or_none()
        if customer is not None:
            await detach_orders(db, customer.id)
            await db.delete(customer)
            deleted = True

    scrubbed = 0
    if payload.orders_to_redact:
        stmt = select(Order).where(
            Order.shop_id == shop.id,
            Order.shopify_order_id.in_(payload.orders_to_redact),
        )
        for order in (await db.execute(stmt)).scalars().all():
            scrub_order(order)
            scrubbed += 1

    _record(
        db,
        CUSTOMER_REDACTED_TOPIC,
        shop_domain,
        {
            "customer_id": customer_id,
            "customer_deleted": deleted,
            "orders_to_redact": payload.orders_to_redact,
            "orders_redacted": scrubbed,
        },
        shop.id,
    )
    await db.commit()
    logger.info(
        "Customer redaction for %s: customer_deleted=%s orders_redacted=%d",
        shop_domain, deleted, scrubbed,
    )
    return shop.id


async def redact_shop(
    db: AsyncSession,
    shop_domain: str,
    data: dict[str, Any],
    *,
    keep_log_id: uuid.UUID | None = None,
) -> None:
    """Delete everything stored for the shop, then the shop itself.

    ``keep_log_id`` is the webhook log entry recording this erasure. A
    ``compliance/shop_redacted`` row is written once the history is gone.
    """
    payload = parse_payload(ShopRedactPayload, data)
    shop = await get_shop_by_domain(db, shop_domain, include_inactive=True)

    log_stmt = delete(WebhookLog).where(WebhookLog.shop_domain == shop_domain)
    if keep_log_id is not None:
        log_stmt = log_stmt.where(WebhookLog.id != keep_log_id)
    summary: dict[str, Any] = {"shopify_shop_id": payload.shop_id, "shop_found": shop is not None}

    if shop is None:
        await db.execute(log_stmt.execution_options(synchronize_session=False))
        _record(db, SHOP_REDACTED_TOPIC, shop_domain, summary)
        await db.commit()
        logger.info("shop/redact for unknown shop %s; cleared webhook history", shop_domain)
        return

    for model in _SHOP_TABLES:
        await db.execute(
            delete(model)
            .where(model.shop_id == shop.id)
            .execution_options(synchronize_session=False)
        )
    await db.execute(log_stmt.execution_options(synchronize_session=False))
    await db.execute(
        delete(WebhookLog)
        .where(WebhookLog.shop_id == shop.id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Shop).where(Shop.id == shop.id).execution_options(synchronize_session=False)
    )
    _record(db, SHOP_REDACTED_TOPIC, shop_domain, summary)
    await db.commit()
    logger.info("Erased all data for %s", shop_domain)


async def process_compliance(
    db: AsyncSession,
    topic: str,
    shop_domain: str,
    data: dict[str, Any],
    *,
    keep_log_id: uuid.UUID | None = None,
) -> uuid.UUID | None:
    """Dispatch a compliance topic. Returns the shop id still on record, if any."""
    if topic == "customers/data_request":
        return await handle_data_request(db, shop_domain, data)
    if topic == "customers/redact":
        return await redact_customer(db, shop_domain, data)
    if topic == "shop/redact":
        await redact_shop(db, shop_domain, data, keep_log_id=keep_log_id)
        return None
    raise ValueError(f"Not a compliance topic: {topic}")
