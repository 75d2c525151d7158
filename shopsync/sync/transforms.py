"""Shopify payload -> local column mappings.

One function per resource kind, used by both the webhook handlers and the
bulk synchronizer, plus the small display snapshots carried on realtime
events.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from ..schemas.payloads import (
    CustomerPayload,
    InventoryLevelPayload,
    LocationPayload,
    OrderPayload,
    ProductPayload,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def split_tags(value: str | None) -> list[str]:
    """Shopify sends tags as one comma separated string."""
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]


def _decimal(value: Decimal | None) -> Decimal:
    return value if value is not None else Decimal("0")


def transform_order(payload: OrderPayload) -> dict[str, Any]:
    shipping = payload.shipping_address or {}
    return {
        "shopify_order_id": payload.id,
        "order_number": payload.order_number,
        "name": payload.name,
        "email": payload.email,
        "shopify_customer_id": payload.customer.id if payload.customer else None,
        "financial_status": payload.financial_status,
        "fulfillment_status": payload.fulfillment_status,
        "total_price": _decimal(payload.total_price),
        "subtotal_price": _decimal(payload.subtotal_price),
        "total_tax": _decimal(payload.total_tax),
        "total_discounts": _decimal(payload.total_discounts),
        "currency": payload.currency,
        "line_items": payload.line_items,
        "shipping_address": payload.shipping_address,
        "billing_address": payload.billing_address,
        "shipping_latitude": _coordinate(shipping.get("latitude")),
        "shipping_longitude": _coordinate(shipping.get("longitude")),
        "discount_codes": payload.discount_codes,
        "note": payload.note,
        "tags": split_tags(payload.tags),
        "cancelled_at": payload.cancelled_at,
        "closed_at": payload.closed_at,
        "created_at_shopify": payload.created_at,
        "updated_at_shopify": payload.updated_at,
        "pii_redacted": False,
        "synced_at": utcnow(),
    }


def _coordinate(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except ArithmeticError:
        return None


def transform_product(payload: ProductPayload) -> dict[str, Any]:
    return {
        "shopify_product_id": payload.id,
        "title": payload.title,
        "description": payload.body_html,
        "vendor": payload.vendor,
        "product_type": payload.product_type,
        "handle": payload.handle,
        "status": payload.status,
        "tags": split_tags(payload.tags),
        "images": payload.images,
        "options": payload.options,
        "variants": payload.variants,
        "created_at_shopify": payload.created_at,
        "updated_at_shopify": payload.updated_at,
        "synced_at": utcnow(),
    }


def transform_variant_items(payload: ProductPayload) -> list[dict[str, Any]]:
    """Inventory items referenced by the product's variants."""
    items = []
    for variant in payload.variants:
        item_id = variant.get("inventory_item_id")
        if not isinstance(item_id, int):
            continue
        items.append(
            {
                "shopify_inventory_item_id": item_id,
                "shopify_variant_id": variant.get("id"),
                "sku": variant.get("sku") or None,
                "tracked": variant.get("inventory_management") == "shopify",
                "synced_at": utcnow(),
            }
        )
    return items


def transform_customer(payload: CustomerPayload) -> dict[str, Any]:
    return {
        "shopify_customer_id": payload.id,
        "email": payload.email,
        "first_name": payload.first_name,
        "last_name": payload.last_name,
        "phone": payload.phone,
        "orders_count": payload.orders_count,
        "total_spent": _decimal(payload.total_spent),
        "currency": payload.currency,
        "tags": split_tags(payload.tags),
        "accepts_marketing": payload.accepts_marketing,
        "default_address": payload.default_address,
        "addresses": payload.addresses,
        "created_at_shopify": payload.created_at,
        "updated_at_shopify": payload.updated_at,
        "pii_redacted": False,
        "synced_at": utcnow(),
    }


def transform_location(payload: LocationPayload) -> dict[str, Any]:
    return {
        "shopify_location_id": payload.id,
        "name": payload.name,
        "address": {
            "address1": payload.address1,
            "address2": payload.address2,
            "city": payload.city,
            "province": payload.province,
            "country": payload.country,
            "zip": payload.zip,
        },
        "is_active": payload.active,
        "synced_at": utcnow(),
    }


def transform_inventory_level(payload: InventoryLevelPayload) -> dict[str, Any]:
    return {
        "shopify_inventory_item_id": payload.inventory_item_id,
        "shopify_location_id": payload.location_id,
        "available": payload.available,
        "synced_at": utcnow(),
    }


# Display snapshots: just enough to render a live feed entry.

def order_snapshot(payload: OrderPayload) -> dict[str, Any]:
    return {
        "order_number": payload.order_number,
        "name": payload.name,
        "total_price": str(_decimal(payload.total_price)),
        "financial_status": payload.financial_status,
        "fulfillment_status": payload.fulfillment_status,
        "customer_email": payload.email or (payload.customer.email if payload.customer else None),
    }


def product_snapshot(payload: ProductPayload) -> dict[str, Any]:
    return {
        "title": payload.title,
        "status": payload.status,
        "variants_count": len(payload.variants),
    }


def customer_snapshot(payload: CustomerPayload) -> dict[str, Any]:
    name = " ".join(p for p in (payload.first_name, payload.last_name) if p)
    return {
        "email": payload.email,
        "name": name or None,
        "orders_count": payload.orders_count,
    }


def inventory_snapshot(payload: InventoryLevelPayload, location_name: str | None = None) -> dict[str, Any]:
    return {
        "inventory_item_id": payload.inventory_item_id,
        "location_id": payload.location_id,
        "location_name": location_name,
        "available": payload.available,
    }
