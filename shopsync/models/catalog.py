"""Product and location models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin, ShopifySyncMixin


class Product(UUIDMixin, TimestampMixin, TenantMixin, ShopifySyncMixin, Base):
    __tablename__ = "product"
    __table_args__ = (
        UniqueConstraint("shop_id", "shopify_product_id", name="uq_product_shop_shopify_id"),
        Index("ix_product_shop_status", "shop_id", "status"),
    )

    shopify_product_id: Mapped[int] = mapped_column(BigInteger, index=True)
    title: Mapped[str] = mapped_column(String(500), default="")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    vendor: Mapped[str | None] = mapped_column(String(255), default=None)
    product_type: Mapped[str | None] = mapped_column(String(255), default=None)
    handle: Mapped[str | None] = mapped_column(String(255), default=None)
    status: Mapped[str | None] = mapped_column(String(20), default="active")  # active/archived/draft
    tags: Mapped[list] = mapped_column(JSON, default=list)
    images: Mapped[list] = mapped_column(JSON, default=list)
    options: Mapped[list] = mapped_column(JSON, default=list)
    variants: Mapped[list] = mapped_column(JSON, default=list)

    def __repr__(self) -> str:
        return f"<Product {self.shopify_product_id} {self.title!r}>"


class Location(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "location"
    __table_args__ = (
        UniqueConstraint("shop_id", "shopify_location_id", name="uq_location_shop_shopify_id"),
    )

    shopify_location_id: Mapped[int] = mapped_column(BigInteger, index=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    address: Mapped[dict | None] = mapped_column(JSON, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    def __repr__(self) -> str:
        return f"<Location {self.shopify_location_id} {self.name!r}>"
