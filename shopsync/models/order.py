"""Order model."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON, BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Text,
    UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin, ShopifySyncMixin


class Order(UUIDMixin, TimestampMixin, TenantMixin, ShopifySyncMixin, Base):
    __tablename__ = "shop_order"
    __table_args__ = (
        UniqueConstraint("shop_id", "shopify_order_id", name="uq_order_shop_shopify_id"),
        Index("ix_order_shop_created", "shop_id", "created_at_shopify"),
        Index("ix_order_shop_financial", "shop_id", "financial_status"),
    )

    shopify_order_id: Mapped[int] = mapped_column(BigInteger, index=True)
    order_number: Mapped[int | None] = mapped_column(Integer, default=None)
    name: Mapped[str | None] = mapped_column(String(50), default=None)  # e.g. "#1001"
    email: Mapped[str | None] = mapped_column(String(255), default=None)

    # Resolved best-effort against locally known customers; null is not an error.
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("customer.id", ondelete="SET NULL"), default=None, index=True
    )
    shopify_customer_id: Mapped[int | None] = mapped_column(BigInteger, default=None)

    financial_status: Mapped[str | None] = mapped_column(String(30), default=None)
    fulfillment_status: Mapped[str | None] = mapped_column(String(30), default=None)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    subtotal_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total_tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total_discounts: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    currency: Mapped[str | None] = mapped_column(String(10), default=None)
    line_items: Mapped[list] = mapped_column(JSON, default=list)
    shipping_address: Mapped[dict | None] = mapped_column(JSON, default=None)
    billing_address: Mapped[dict | None] = mapped_column(JSON, default=None)
    shipping_latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 7), default=None)
    shipping_longitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 7), default=None)
    discount_codes: Mapped[list] = mapped_column(JSON, default=list)
    note: Mapped[str | None] = mapped_column(Text, default=None)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    pii_redacted: Mapped[bool] = mapped_column(Boolean, default=False)

    def __repr__(self) -> str:
        return f"<Order {self.name or self.shopify_order_id}>"
