"""Shop model - the tenant root and its stored Shopify session."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin


class Shop(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "shop"

    shop_domain: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    shopify_shop_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    access_token: Mapped[str] = mapped_column(Text)
    scope: Mapped[str] = mapped_column(Text, default="")
    shop_name: Mapped[str | None] = mapped_column(String(255), default=None)
    shop_email: Mapped[str | None] = mapped_column(String(255), default=None)
    currency: Mapped[str] = mapped_column(String(10), default="USD")
    timezone: Mapped[str | None] = mapped_column(String(100), default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    installed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    uninstalled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    @property
    def scopes(self) -> set[str]:
        return {s.strip() for s in (self.scope or "").split(",") if s.strip()}

    def __repr__(self) -> str:
        return f"<Shop {self.shop_domain!r}>"
