"""Customer model."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import JSON, BigInteger, Boolean, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin, ShopifySyncMixin


class Customer(UUIDMixin, TimestampMixin, TenantMixin, ShopifySyncMixin, Base):
    __tablename__ = "customer"
    __table_args__ = (
        UniqueConstraint("shop_id", "shopify_customer_id", name="uq_customer_shop_shopify_id"),
        Index("ix_customer_shop_email", "shop_id", "email"),
    )

    shopify_customer_id: Mapped[int] = mapped_column(BigInteger, index=True)
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    first_name: Mapped[str | None] = mapped_column(String(255), default=None)
    last_name: Mapped[str | None] = mapped_column(String(255), default=None)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    orders_count: Mapped[int] = mapped_column(Integer, default=0)
    total_spent: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    currency: Mapped[str | None] = mapped_column(String(10), default=None)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    accepts_marketing: Mapped[bool] = mapped_column(Boolean, default=False)
    default_address: Mapped[dict | None] = mapped_column(JSON, default=None)
    addresses: Mapped[list] = mapped_column(JSON, default=list)
    pii_redacted: Mapped[bool] = mapped_column(Boolean, default=False)

    def __repr__(self) -> str:
        return f"<Customer {self.shopify_customer_id}>"
