"""Shop session store: credentials and scopes per installed shop."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.shop import Shop
from ..sync.store import upsert_row
from ..sync.transforms import utcnow

logger = logging.getLogger(__name__)


def normalize_domain(shop_domain: str) -> str:
    return shop_domain.strip().lower()


async def _find_by_domain(db: AsyncSession, shop_domain: str) -> Shop | None:
    stmt = select(Shop).where(Shop.shop_domain == normalize_domain(shop_domain))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def store_session(
    db: AsyncSession,
    shop_domain: str,
    access_token: str,
    scope: str,
    metadata: dict[str, Any] | None = None,
) -> Shop:
    """Upsert the shop by domain. Always (re)activates it.

    Metadata fields overwrite stored values only when present.
    """
    metadata = metadata or {}
    values: dict[str, Any] = {
        "shop_domain": normalize_domain(shop_domain),
        "access_token": access_token,
        "scope": scope,
        "is_active": True,
        "uninstalled_at": None,
        "installed_at": utcnow(),
    }
    if metadata.get("id") is not None:
        values["shopify_shop_id"] = metadata["id"]
    if metadata.get("name"):
        values["shop_name"] = metadata["name"]
    if metadata.get("email"):
        values["shop_email"] = metadata["email"]
    if metadata.get("currency"):
        values["currency"] = metadata["currency"]
    if metadata.get("iana_timezone") or metadata.get("timezone"):
        values["timezone"] = metadata.get("iana_timezone") or metadata.get("timezone")

    shop_id = await upsert_row(db, Shop, values, ("shop_domain",))
    await db.commit()
    stmt = select(Shop).where(Shop.id == shop_id).execution_options(populate_existing=True)
    shop = (await db.execute(stmt)).scalar_one()
    logger.info("Stored session for %s (scope=%s)", shop.shop_domain, scope)
    return shop


async def mark_uninstalled(db: AsyncSession, shop_domain: str) -> Shop | None:
    """Deactivate the shop. Its synced data is kept."""
    shop = await _find_by_domain(db, shop_domain)
    if shop is None:
        return None
    shop.is_active = False
    shop.uninstalled_at = utcnow()
    await db.commit()
    await db.refresh(shop)
    logger.info("Marked %s uninstalled", shop.shop_domain)
    return shop


async def get_shop_by_domain(
    db: AsyncSession, shop_domain: str, *, include_inactive: bool = False
) -> Shop | None:
    shop = await _find_by_domain(db, shop_domain)
    if shop is None or (not shop.is_active and not include_inactive):
        return None
    return shop


async def get_shop_by_id(db: AsyncSession, shop_id: uuid.UUID) -> Shop | None:
    stmt = select(Shop).where(Shop.id == shop_id, Shop.is_active.is_(True))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_active_shops(db: AsyncSession) -> list[Shop]:
    stmt = select(Shop).where(Shop.is_active.is_(True)).order_by(Shop.shop_domain)
    result = await db.execute(stmt)
    return list(result.scalars().all())
