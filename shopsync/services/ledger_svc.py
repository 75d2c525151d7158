"""Sync ledger: one entry per resource kind per bulk sync run.

Entries start ``running`` and get exactly one terminal update. The
terminal write is conditional on the entry still being ``running`` so a
second one is detected instead of silently overwriting history.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import LedgerError
from ..models.sync_log import (
    SYNC_STATUS_COMPLETED,
    SYNC_STATUS_FAILED,
    SYNC_STATUS_RUNNING,
    SyncLog,
)
from ..sync.transforms import utcnow

logger = logging.getLogger(__name__)


@dataclass
class LedgerRun:
    run_id: uuid.UUID
    entry_ids: dict[str, uuid.UUID] = field(default_factory=dict)


async def start_run(
    db: AsyncSession,
    shop_id: uuid.UUID,
    resource_types: Iterable[str],
    sync_type: str = "manual",
) -> LedgerRun:
    """Create one running entry per resource kind, sharing a run id."""
    run = LedgerRun(run_id=uuid.uuid4())
    now = utcnow()
    for resource_type in resource_types:
        entry = SyncLog(
            id=uuid.uuid4(),
            shop_id=shop_id,
            run_id=run.run_id,
            sync_type=sync_type,
            resource_type=resource_type,
            status=SYNC_STATUS_RUNNING,
            records_synced=0,
            started_at=now,
            heartbeat_at=now,
        )
        db.add(entry)
        run.entry_ids[resource_type] = entry.id
    await db.commit()
    return run


async def heartbeat(db: AsyncSession, entry_id: uuid.UUID, records_synced: int) -> None:
    """Record progress on a running entry."""
    await db.execute(
        update(SyncLog)
        .where(SyncLog.id == entry_id, SyncLog.status == SYNC_STATUS_RUNNING)
        .values(records_synced=records_synced, heartbeat_at=utcnow())
        .execution_options(synchronize_session=False)
    )


async def _finish(db: AsyncSession, entry_id: uuid.UUID, **values) -> None:
    result = await db.execute(
        update(SyncLog)
        .where(SyncLog.id == entry_id, SyncLog.status == SYNC_STATUS_RUNNING)
        .values(completed_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise LedgerError(f"Sync log {entry_id} is already terminal")
    await db.commit()


async def complete_entry(db: AsyncSession, entry_id: uuid.UUID, records_synced: int) -> None:
    await _finish(db, entry_id, status=SYNC_STATUS_COMPLETED, records_synced=records_synced)


async def fail_entry(
    db: AsyncSession, entry_id: uuid.UUID, message: str, records_synced: int | None = None
) -> None:
    values = {"status": SYNC_STATUS_FAILED, "error_message": message[:2000]}
    if records_synced is not None:
        values["records_synced"] = records_synced
    await _finish(db, entry_id, **values)


async def list_logs(db: AsyncSession, shop_id: uuid.UUID, limit: int = 50) -> list[SyncLog]:
    stmt = (
        select(SyncLog)
        .where(SyncLog.shop_id == shop_id)
        .order_by(SyncLog.started_at.desc(), SyncLog.resource_type)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def has_running_entries(db: AsyncSession, shop_id: uuid.UUID) -> bool:
    stmt = select(func.count(SyncLog.id)).where(
        SyncLog.shop_id == shop_id, SyncLog.status == SYNC_STATUS_RUNNING
    )
    return (await db.execute(stmt)).scalar_one() > 0


async def reconcile_stale_runs(
    db: AsyncSession, older_than: timedelta, now: datetime | None = None
) -> int:
    """Fail running entries whose last heartbeat is older than ``older_than``.

    A process that dies mid-sync leaves its entries running forever; this
    is the only thing that closes them.
    """
    now = now or utcnow()
    cutoff = now - older_than
    last_seen = func.coalesce(SyncLog.heartbeat_at, SyncLog.started_at)
    result = await db.execute(
        update(SyncLog)
        .where(SyncLog.status == SYNC_STATUS_RUNNING, last_seen < cutoff)
        .values(
            status=SYNC_STATUS_FAILED,
            error_message=f"Interrupted: no progress since before {cutoff.isoformat()}",
            completed_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    count = result.rowcount or 0
    if count:
        logger.warning("Marked %d stale sync log entries as failed", count)
    return count
