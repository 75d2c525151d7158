"""Resource store: transform-and-upsert per resource kind.

These are the only writers of synced rows. The webhook handlers and the
bulk synchronizer both go through them so the two paths cannot drift
apart in shape.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.catalog import Location, Product
from ..models.customer import Customer
from ..models.inventory import InventoryItem, InventoryLevel
from ..models.order import Order
from ..schemas.payloads import (
    CustomerPayload,
    InventoryLevelPayload,
    LocationPayload,
    OrderPayload,
    ProductPayload,
)
from .store import delete_row, upsert_row
from .transforms import (
    transform_customer,
    transform_inventory_level,
    transform_location,
    transform_order,
    transform_product,
    transform_variant_items,
    utcnow,
)


async def resolve_customer_id(
    db: AsyncSession, shop_id: uuid.UUID, shopify_customer_id: int | None
) -> uuid.UUID | None:
    """Local id of a known customer, or None. A miss is not an error."""
    if shopify_customer_id is None:
        return None
    stmt = select(Customer.id).where(
        Customer.shop_id == shop_id,
        Customer.shopify_customer_id == shopify_customer_id,
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def upsert_order(db: AsyncSession, shop_id: uuid.UUID, payload: OrderPayload) -> uuid.UUID:
    values = transform_order(payload)
    values["shop_id"] = shop_id
    values["customer_id"] = await resolve_customer_id(db, shop_id, values["shopify_customer_id"])
    return await upsert_row(db, Order, values, ("shop_id", "shopify_order_id"))


async def upsert_product(db: AsyncSession, shop_id: uuid.UUID, payload: ProductPayload) -> uuid.UUID:
    values = transform_product(payload)
    values["shop_id"] = shop_id
    product_id = await upsert_row(db, Product, values, ("shop_id", "shopify_product_id"))
    for item in transform_variant_items(payload):
        item["shop_id"] = shop_id
        await upsert_row(db, InventoryItem, item, ("shop_id", "shopify_inventory_item_id"))
    return product_id


async def upsert_customer(db: AsyncSession, shop_id: uuid.UUID, payload: CustomerPayload) -> uuid.UUID:
    values = transform_customer(payload)
    values["shop_id"] = shop_id
    return await upsert_row(db, Customer, values, ("shop_id", "shopify_customer_id"))


async def upsert_location(db: AsyncSession, shop_id: uuid.UUID, payload: LocationPayload) -> uuid.UUID:
    values = transform_location(payload)
    values["shop_id"] = shop_id
    return await upsert_row(db, Location, values, ("shop_id", "shopify_location_id"))


async def location_name(db: AsyncSession, shop_id: uuid.UUID, shopify_location_id: int) -> str | None:
    stmt = select(Location.name).where(
        Location.shop_id == shop_id,
        Location.shopify_location_id == shopify_location_id,
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def upsert_inventory_level(
    db: AsyncSession,
    shop_id: uuid.UUID,
    payload: InventoryLevelPayload,
    *,
    location_label: str | None = None,
) -> uuid.UUID:
    # Get-or-create the item; variant details come from the product upsert.
    item_id = await upsert_row(
        db,
        InventoryItem,
        {
            "shop_id": shop_id,
            "shopify_inventory_item_id": payload.inventory_item_id,
            "synced_at": utcnow(),
        },
        ("shop_id", "shopify_inventory_item_id"),
        update=("synced_at",),
    )
    if location_label is None:
        location_label = await location_name(db, shop_id, payload.location_id)

    values = transform_inventory_level(payload)
    values.update(shop_id=shop_id, inventory_item_id=item_id, location_name=location_label)
    return await upsert_row(
        db,
        InventoryLevel,
        values,
        ("shop_id", "shopify_inventory_item_id", "shopify_location_id"),
    )


async def delete_product(
    db: AsyncSession, shop_id: uuid.UUID, shopify_product_id: int
) -> tuple[uuid.UUID, str] | None:
    """Delete the product; returns its id and title, or None if unknown."""
    stmt = select(Product.id, Product.title).where(
        Product.shop_id == shop_id,
        Product.shopify_product_id == shopify_product_id,
    )
    row = (await db.execute(stmt)).first()
    if row is None:
        return None
    deleted_id = await delete_row(db, Product, id=row.id)
    if deleted_id is None:
        return None
    return deleted_id, row.title


async def delete_customer(db: AsyncSession, shop_id: uuid.UUID, shopify_customer_id: int) -> uuid.UUID | None:
    customer_id = await resolve_customer_id(db, shop_id, shopify_customer_id)
    if customer_id is None:
        return None
    await detach_orders(db, customer_id)
    return await delete_row(db, Customer, id=customer_id)


async def detach_orders(db: AsyncSession, customer_id: uuid.UUID) -> None:
    """Null out order -> customer links before the customer row goes away."""
    await db.execute(
        update(Order)
        .where(Order.customer_id == customer_id)
        .values(customer_id=None)
        .execution_options(synchronize_session=False)
    )


async def delete_inventory_level(
    db: AsyncSession, shop_id: uuid.UUID, payload: InventoryLevelPayload
) -> uuid.UUID | None:
    return await delete_row(
        db,
        InventoryLevel,
        shop_id=shop_id,
        shopify_inventory_item_id=payload.inventory_item_id,
        shopify_location_id=payload.location_id,
    )
