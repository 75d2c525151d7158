"""PII retention: scrub personal data from all but the newest orders."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import SyncSettings, settings as default_settings
from ..models.customer import Customer
from ..models.order import Order
from .session_svc import list_active_shops

logger = logging.getLogger(__name__)

# Coarse location survives redaction so regional reporting keeps working.
RETAINED_ADDRESS_FIELDS = ("city", "province", "province_code", "country", "country_code")


@dataclass
class RedactionReport:
    shops_processed: int = 0
    orders_redacted: int = 0
    customers_redacted: int = 0
    errors: list[str] = field(default_factory=list)


def scrub_address(address: dict[str, Any] | None) -> dict[str, Any] | None:
    if not address:
        return None
    return {k: address.get(k) for k in RETAINED_ADDRESS_FIELDS if address.get(k) is not None}


def scrub_order(order: Order) -> None:
    order.email = None
    order.billing_address = None
    order.note = None
    order.shipping_address = scrub_address(order.shipping_address)
    order.shipping_latitude = None
    order.shipping_longitude = None
    order.pii_redacted = True


def scrub_customer(customer: Customer) -> None:
    customer.email = None
    customer.first_name = None
    customer.last_name = None
    customer.phone = None
    customer.default_address = None
    customer.addresses = []
    customer.pii_redacted = True


async def redact_shop_orders(
    db: AsyncSession, shop_id: uuid.UUID, keep_recent: int, batch_size: int
) -> tuple[int, int]:
    """Redact one batch of old orders, then customers left with no live PII.

    Returns ``(orders_redacted, customers_redacted)``.
    """
    recent = (
        select(Order.id)
        .where(Order.shop_id == shop_id)
        .order_by(Order.created_at_shopify.desc().nulls_last(), Order.id)
        .limit(keep_recent)
    )
    stmt = (
        select(Order)
        .where(
            Order.shop_id == shop_id,
            Order.pii_redacted.is_(False),
            Order.id.not_in(recent.scalar_subquery()),
        )
        .limit(batch_size)
    )
    orders = list((await db.execute(stmt)).scalars().all())
    for order in orders:
        scrub_order(order)
    await db.flush()

    live_order = exists().where(Order.customer_id == Customer.id, Order.pii_redacted.is_(False))
    any_order = exists().where(Order.customer_id == Customer.id)
    stmt = select(Customer).where(
        Customer.shop_id == shop_id,
        Customer.pii_redacted.is_(False),
        any_order,
        ~live_order,
    )
    customers = list((await db.execute(stmt)).scalars().all())
    for customer in customers:
        scrub_customer(customer)

    await db.commit()
    return len(orders), len(customers)


async def run_pii_redaction(
    db: AsyncSession, settings: SyncSettings | None = None
) -> RedactionReport:
    """One pass over every active shop. A failing shop does not stop the rest."""
    settings = settings or default_settings
    report = RedactionReport()
    # Plain values: a rollback below expires the ORM objects.
    shops = [(shop.id, shop.shop_domain) for shop in await list_active_shops(db)]
    for shop_id, domain in shops:
        try:
            orders, customers = await redact_shop_orders(
                db, shop_id, settings.redaction_keep_recent, settings.redaction_batch_size
            )
        except Exception as exc:
            logger.exception("PII redaction failed for %s", domain)
            await db.rollback()
            report.errors.append(f"{domain}: {exc}")
            continue
        report.shops_processed += 1
        report.orders_redacted += orders
        report.customers_redacted += customers
        if orders or customers:
            logger.info("Redacted %d orders and %d customers for %s", orders, customers, domain)
    return report
