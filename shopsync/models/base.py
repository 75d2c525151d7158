"""Base model classes and mixins for synced Shopify data."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class UUIDMixin:
    """Adds a UUID primary key."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )


class TimestampMixin:
    """Adds created_at / updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class TenantMixin:
    """Adds shop_id FK for multi-tenant isolation."""

    shop_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("shop.id", ondelete="CASCADE"),
        index=True,
    )


class ShopifySyncMixin:
    """Upstream timestamps plus the time we last wrote the row from Shopify."""

    created_at_shopify: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    updated_at_shopify: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
