"""Shop installation: session, webhooks, then the initial backfill."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import SyncSettings, settings as default_settings
from ..models.shop import Shop
from ..sync.bulk import BulkSynchronizer, SyncReport
from ..sync.client import ShopifyClient
from ..sync.registration import RegistrationResult, register_webhooks
from .session_svc import store_session

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    shop: Shop
    registration: RegistrationResult | None
    sync: SyncReport | None


async def install_shop(
    db: AsyncSession,
    shop_domain: str,
    access_token: str,
    scope: str,
    *,
    settings: SyncSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    run_sync: bool = True,
) -> InstallResult:
    """Complete an installation once the OAuth handshake produced a token."""
    settings = settings or default_settings
    async with ShopifyClient(
        shop_domain, access_token, settings=settings, transport=transport
    ) as client:
        metadata = await client.get_shop()
        shop = await store_session(db, shop_domain, access_token, scope, metadata)

        registration = None
        if settings.public_url:
            registration = await register_webhooks(client, settings.webhook_address)
        else:
            logger.warning("public_url is not set; skipping webhook registration for %s", shop_domain)

        report = None
        if run_sync:
            report = await BulkSynchronizer(
                db, shop, client, settings=settings, sync_type="initial"
            ).run()

    await db.refresh(shop)
    return InstallResult(shop=shop, registration=registration, sync=report)
