"""Webhook log model - every authenticated delivery, processed or not."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin


class WebhookLog(UUIDMixin, Base):
    __tablename__ = "webhook_log"

    # Nullable: deliveries for unknown or uninstalled shops are still logged.
    shop_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("shop.id", ondelete="SET NULL"), default=None, index=True
    )
    shop_domain: Mapped[str] = mapped_column(String(255), index=True)
    topic: Mapped[str] = mapped_column(String(100), index=True)
    shopify_webhook_id: Mapped[str | None] = mapped_column(String(100), default=None)
    processed: Mapped[bool] = mapped_column(Boolean, default=False)
    error_message: Mapped[str | None] = mapped_column(Text, default=None)
    payload: Mapped[dict | None] = mapped_column(JSON, default=None)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<WebhookLog {self.topic} {self.shop_domain}>"
