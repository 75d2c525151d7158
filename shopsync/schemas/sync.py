"""Response schemas for sync, ledger and event endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class SyncLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    run_id: uuid.UUID
    sync_type: str
    resource_type: str
    status: str
    records_synced: int = 0
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    heartbeat_at: datetime | None = None


class SyncTriggered(BaseModel):
    shop_id: uuid.UUID
    status: str = "scheduled"


class RealtimeEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    shop_id: uuid.UUID
    event_type: str
    resource_type: str
    resource_id: str | None = None
    shopify_id: int | None = None
    payload: dict[str, Any] = {}
    created_at: datetime | None = None


class RedactionResult(BaseModel):
    shops_processed: int = 0
    orders_redacted: int = 0
    customers_redacted: int = 0
    errors: list[str] = []
