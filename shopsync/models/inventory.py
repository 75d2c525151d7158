"""Inventory item and per-location inventory level models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class InventoryItem(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "inventory_item"
    __table_args__ = (
        UniqueConstraint(
            "shop_id", "shopify_inventory_item_id", name="uq_inventory_item_shop_shopify_id"
        ),
    )

    shopify_inventory_item_id: Mapped[int] = mapped_column(BigInteger, index=True)
    shopify_variant_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    sku: Mapped[str | None] = mapped_column(String(255), default=None)
    tracked: Mapped[bool] = mapped_column(Boolean, default=True)
    synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    def __repr__(self) -> str:
        return f"<InventoryItem {self.shopify_inventory_item_id}>"


class InventoryLevel(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "inventory_level"
    __table_args__ = (
        UniqueConstraint(
            "shop_id",
            "shopify_inventory_item_id",
            "shopify_location_id",
            name="uq_inventory_level_shop_item_location",
        ),
    )

    inventory_item_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("inventory_item.id", ondelete="CASCADE"), default=None, index=True
    )
    shopify_inventory_item_id: Mapped[int] = mapped_column(BigInteger)
    shopify_location_id: Mapped[int] = mapped_column(BigInteger)
    location_name: Mapped[str | None] = mapped_column(String(255), default=None)
    available: Mapped[int | None] = mapped_column(Integer, default=0)
    synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    def __repr__(self) -> str:
        return (
            f"<InventoryLevel item={self.shopify_inventory_item_id} "
            f"location={self.shopify_location_id} available={self.available}>"
        )
