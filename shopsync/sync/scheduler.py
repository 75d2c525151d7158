"""Background loop for periodic re-syncs and stale ledger cleanup."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import SyncSettings, settings as default_settings
from ..database import async_session_factory
from ..models.shop import Shop
from ..services.ledger_svc import has_running_entries, reconcile_stale_runs
from .bulk import run_bulk_sync
from .transforms import utcnow

logger = logging.getLogger(__name__)


async def shops_due_for_sync(db: AsyncSession, interval: timedelta) -> list[Shop]:
    """Active shops never synced or last synced before ``interval`` ago."""
    cutoff = utcnow() - interval
    stmt = (
        select(Shop)
        .where(
            Shop.is_active.is_(True),
            or_(Shop.last_sync_at.is_(None), Shop.last_sync_at < cutoff),
        )
        .order_by(Shop.last_sync_at.asc().nulls_first())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


class SyncScheduler:
    """Polls for shops whose data is older than the sync interval."""

    def __init__(
        self,
        settings: SyncSettings | None = None,
        session_factory: async_sessionmaker | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self._session_factory = session_factory or async_session_factory
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    def start(self) -> None:
        if self._task is not None or not self.settings.sync_schedule_enabled:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name="shopsync-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

    async def tick(self) -> int:
        """One pass: reconcile stale runs, then sync every due shop sequentially."""
        stale_after = timedelta(minutes=self.settings.sync_stale_after_minutes)
        interval = timedelta(hours=self.settings.sync_schedule_interval_hours)
        synced = 0
        async with self._session_factory() as db:
            await reconcile_stale_runs(db, stale_after)
            shop_ids = [shop.id for shop in await shops_due_for_sync(db, interval)]

        for shop_id in shop_ids:
            async with self._session_factory() as db:
                if await has_running_entries(db, shop_id):
                    logger.info("Sync already running for shop %s; skipping", shop_id)
                    continue
                try:
                    await run_bulk_sync(db, shop_id, settings=self.settings, sync_type="scheduled")
                    synced += 1
                except Exception:
                    # Already recorded on the ledger; keep going with other shops.
                    logger.exception("Scheduled sync failed for shop %s", shop_id)
        return synced

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Sync scheduler loop failed")

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.settings.sync_scheduler_poll_seconds
                )
            except asyncio.TimeoutError:
                pass


sync_scheduler = SyncScheduler()
