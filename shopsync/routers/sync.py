"""Bulk sync trigger and ledger history."""

from __future__ import annotations

import logging
import uuid
from typing import Awaitable, Callable

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import SyncSettings, get_settings
from ..database import async_session_factory, get_db
from ..errors import ShopSyncError
from ..schemas.sync import SyncLogOut, SyncTriggered
from ..services import ledger_svc
from ..services.session_svc import get_shop_by_id
from ..sync.bulk import run_bulk_sync

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shops/{shop_id}", tags=["sync"])

SyncRunner = Callable[[uuid.UUID, str, SyncSettings], Awaitable[None]]


async def run_sync_in_background(
    shop_id: uuid.UUID, sync_type: str, settings: SyncSettings
) -> None:
    """Background task body; owns its own session."""
    async with async_session_factory() as db:
        try:
            await run_bulk_sync(db, shop_id, settings=settings, sync_type=sync_type)
        except ShopSyncError as exc:
            logger.warning("Background sync for %s failed: %s", shop_id, exc.message)
        except Exception:
            logger.exception("Background sync for %s failed", shop_id)


def get_sync_runner() -> SyncRunner:
    return run_sync_in_background


@router.post("/sync", status_code=202, response_model=SyncTriggered)
async def trigger_sync(
    shop_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    settings: SyncSettings = Depends(get_settings),
    runner: SyncRunner = Depends(get_sync_runner),
):
    shop = await get_shop_by_id(db, shop_id)
    if shop is None:
        raise HTTPException(status_code=404, detail="Shop not found")
    background_tasks.add_task(runner, shop.id, "manual", settings)
    return SyncTriggered(shop_id=shop.id)


@router.get("/sync-logs", response_model=list[SyncLogOut])
async def sync_logs(
    shop_id: uuid.UUID,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
):
    return await ledger_svc.list_logs(db, shop_id, limit=min(max(limit, 1), 500))
