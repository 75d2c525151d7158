"""Realtime event model - persisted change notifications per shop."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin


class RealtimeEvent(UUIDMixin, Base):
    __tablename__ = "realtime_event"
    __table_args__ = (
        Index("ix_realtime_event_shop_created", "shop_id", "created_at"),
        Index("ix_realtime_event_shop_resource", "shop_id", "resource_type"),
    )

    shop_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shop.id", ondelete="CASCADE"), index=True
    )
    event_type: Mapped[str] = mapped_column(String(50))  # order_created, product_deleted, etc.
    resource_type: Mapped[str] = mapped_column(String(30))  # order, product, customer, inventory
    resource_id: Mapped[str | None] = mapped_column(String(64), default=None)  # local row id
    shopify_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    payload: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<RealtimeEvent {self.event_type} {self.shopify_id}>"
