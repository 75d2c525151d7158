"""Bulk historical sync: paginate each resource kind into the local store.

Kinds run strictly in dependency order. Customers and orders need
protected data access, so a 403 on either is recorded and skipped; any
other failure marks the kind failed, closes the entries that never ran and
re-raises.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Awaitable, Callable

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import SyncSettings, settings as default_settings
from ..errors import ShopNotFoundError, ShopifyScopeError
from ..models.catalog import Location
from ..models.shop import Shop
from ..schemas.payloads import (
    CustomerPayload,
    InventoryLevelPayload,
    LocationPayload,
    OrderPayload,
    ProductPayload,
    ShopifyPayload,
    parse_payload,
)
from ..services import ledger_svc
from ..services.session_svc import get_shop_by_id
from .client import ShopifyClient
from .resources import (
    upsert_customer,
    upsert_inventory_level,
    upsert_location,
    upsert_order,
    upsert_product,
)
from .transforms import utcnow

logger = logging.getLogger(__name__)

RESOURCE_ORDER = ("locations", "products", "customers", "orders", "inventory")
SCOPE_DEGRADABLE = frozenset({"customers", "orders"})
SCOPE_DENIED_MESSAGE = "Protected data access required - request access in Partner Dashboard"

Upsert = Callable[[AsyncSession, uuid.UUID, Any], Awaitable[uuid.UUID]]


@dataclass
class SyncReport:
    shop_id: uuid.UUID
    run_id: uuid.UUID | None = None
    counts: dict[str, int] = field(default_factory=dict)
    statuses: dict[str, str] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.errors)


class BulkSynchronizer:
    """Runs one full sync for one shop."""

    def __init__(
        self,
        db: AsyncSession,
        shop: Shop,
        client: ShopifyClient,
        *,
        settings: SyncSettings | None = None,
        sync_type: str = "manual",
    ):
        self.db = db
        self.shop = shop
        self.client = client
        self.settings = settings or default_settings
        self.sync_type = sync_type
        # Captured once so a re-read after commit never triggers a lazy load.
        self.shop_id = shop.id
        self.shop_domain = shop.shop_domain

    async def run(self) -> SyncReport:
        run = await ledger_svc.start_run(self.db, self.shop_id, RESOURCE_ORDER, self.sync_type)
        entries = run.entry_ids
        report = SyncReport(shop_id=self.shop_id, run_id=run.run_id)
        logger.info("Starting %s sync for %s (run %s)", self.sync_type, self.shop_domain, report.run_id)

        steps = {
            "locations": self._sync_locations,
            "products": self._sync_products,
            "customers": self._sync_customers,
            "orders": self._sync_orders,
            "inventory": self._sync_inventory,
        }
        for index, kind in enumerate(RESOURCE_ORDER):
            entry_id = entries[kind]
            try:
                count = await steps[kind](entry_id)
            except ShopifyScopeError as exc:
                await self.db.rollback()
                if kind not in SCOPE_DEGRADABLE:
                    await self._abort(entries, index, kind, exc, report)
                    raise
                logger.warning("Skipping %s for %s: %s", kind, self.shop_domain, exc.message)
                await ledger_svc.fail_entry(self.db, entry_id, SCOPE_DENIED_MESSAGE)
                report.statuses[kind] = "failed"
                report.errors[kind] = SCOPE_DENIED_MESSAGE
                continue
            except Exception as exc:
                await self.db.rollback()
                await self._abort(entries, index, kind, exc, report)
                raise
            await ledger_svc.complete_entry(self.db, entry_id, count)
            report.counts[kind] = count
            report.statuses[kind] = "completed"

        await self._touch_last_sync()
        logger.info(
            "Finished sync for %s: %s", self.shop_domain,
            ", ".join(f"{k}={report.statuses[k]}" for k in RESOURCE_ORDER),
        )
        return report

    async def _abort(
        self,
        entries: dict[str, uuid.UUID],
        index: int,
        kind: str,
        exc: Exception,
        report: SyncReport,
    ) -> None:
        logger.error("Sync of %s failed for %s: %s", kind, self.shop_domain, exc, exc_info=True)
        message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        await ledger_svc.fail_entry(self.db, entries[kind], message)
        report.statuses[kind] = "failed"
        report.errors[kind] = message
        for later in RESOURCE_ORDER[index + 1:]:
            await ledger_svc.fail_entry(self.db, entries[later], f"Aborted: {kind} sync failed")
            report.statuses[later] = "failed"

    async def _touch_last_sync(self) -> None:
        shop = await self.db.get(Shop, self.shop_id)
        if shop is not None:
            shop.last_sync_at = utcnow()
            await self.db.commit()

    async def _consume(
        self,
        entry_id: uuid.UUID,
        path: str,
        key: str,
        params: dict[str, Any] | None,
        model: type[ShopifyPayload],
        upsert: Upsert,
        count: int = 0,
    ) -> int:
        """Upsert every record of every page, committing once per page."""
        async for records in self.client.paginate(path, key, params):
            for record in records:
                await upsert(self.db, self.shop_id, parse_payload(model, record))
                count += 1
            await ledger_svc.heartbeat(self.db, entry_id, count)
            await self.db.commit()
        return count

    def _window_start(self) -> str:
        return (utcnow() - timedelta(days=self.settings.sync_days)).isoformat()

    async def _sync_locations(self, entry_id: uuid.UUID) -> int:
        # Small and unpaginated upstream.
        data, _ = await self.client.get("/locations.json")
        count = 0
        for record in data.get("locations") or []:
            await upsert_location(self.db, self.shop_id, parse_payload(LocationPayload, record))
            count += 1
        await ledger_svc.heartbeat(self.db, entry_id, count)
        await self.db.commit()
        return count

    async def _sync_products(self, entry_id: uuid.UUID) -> int:
        return await self._consume(entry_id, "/products.json", "products", None, ProductPayload, upsert_product)

    async def _sync_customers(self, entry_id: uuid.UUID) -> int:
        params = {"updated_at_min": self._window_start()}
        return await self._consume(
            entry_id, "/customers.json", "customers", params, CustomerPayload, upsert_customer
        )

    async def _sync_orders(self, entry_id: uuid.UUID) -> int:
        params = {"status": "any", "created_at_min": self._window_start()}
        return await self._consume(entry_id, "/orders.json", "orders", params, OrderPayload, upsert_order)

    async def _sync_inventory(self, entry_id: uuid.UUID) -> int:
        stmt = select(Location.shopify_location_id, Location.name).where(
            Location.shop_id == self.shop_id
        )
        locations = (await self.db.execute(stmt)).all()
        count = 0
        for location_id, name in locations:

            async def upsert(db: AsyncSession, shop_id: uuid.UUID, payload: InventoryLevelPayload):
                return await upsert_inventory_level(db, shop_id, payload, location_label=name)

            count = await self._consume(
                entry_id,
                "/inventory_levels.json",
                "inventory_levels",
                {"location_ids": location_id},
                InventoryLevelPayload,
                upsert,
                count,
            )
        return count


async def run_bulk_sync(
    db: AsyncSession,
    shop_id: uuid.UUID,
    *,
    settings: SyncSettings | None = None,
    sync_type: str = "manual",
    transport: httpx.AsyncBaseTransport | None = None,
) -> SyncReport:
    """Look up an active shop and sync it. Safe to re-run at any time."""
    settings = settings or default_settings
    shop = await get_shop_by_id(db, shop_id)
    if shop is None:
        raise ShopNotFoundError(f"No active shop {shop_id}")
    async with ShopifyClient(
        shop.shop_domain, shop.access_token, settings=settings, transport=transport
    ) as client:
        return await BulkSynchronizer(
            db, shop, client, settings=settings, sync_type=sync_type
        ).run()
