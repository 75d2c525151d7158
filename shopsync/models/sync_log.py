"""Sync ledger model - one entry per resource kind per bulk run."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin

SYNC_STATUS_RUNNING = "running"
SYNC_STATUS_COMPLETED = "completed"
SYNC_STATUS_FAILED = "failed"


class SyncLog(UUIDMixin, Base):
    __tablename__ = "sync_log"
    __table_args__ = (
        Index("ix_sync_log_shop_started", "shop_id", "started_at"),
        Index("ix_sync_log_status", "status"),
    )

    shop_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shop.id", ondelete="CASCADE"), index=True
    )
    run_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    sync_type: Mapped[str] = mapped_column(String(20), default="full")  # full, scheduled, manual
    resource_type: Mapped[str] = mapped_column(String(30))
    status: Mapped[str] = mapped_column(String(20), default=SYNC_STATUS_RUNNING)
    records_synced: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, default=None)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    heartbeat_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    def __repr__(self) -> str:
        return f"<SyncLog {self.resource_type} {self.status}>"
