"""Shopify webhook routes: resource topics and compliance topics."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import SyncSettings, get_settings
from ..database import get_db
from ..errors import MalformedPayloadError, ShopSyncError
from ..security.webhooks import HMAC_HEADER, require_valid_hmac
from ..services.realtime import EventBroker, get_broker
from ..services.webhook_svc import handle_webhook, parse_body
from ..sync.handlers import Topic

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


async def _receive(
    request: Request,
    db: AsyncSession,
    settings: SyncSettings,
    broker: EventBroker,
    topic: str | None = None,
) -> dict:
    raw_body = await request.body()
    require_valid_hmac(raw_body, request.headers.get(HMAC_HEADER), settings.shopify_api_secret)

    try:
        data = parse_body(raw_body)
    except MalformedPayloadError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc

    topic = topic or request.headers.get("x-shopify-topic")
    shop_domain = request.headers.get("x-shopify-shop-domain") or data.get("shop_domain")
    if not topic or not isinstance(shop_domain, str) or not shop_domain:
        raise HTTPException(status_code=400, detail="Missing Shopify topic or shop domain header")

    parsed = Topic.parse(topic)
    compliance = parsed is not None and parsed.is_compliance
    try:
        outcome = await handle_webhook(
            db,
            topic=topic,
            shop_domain=shop_domain,
            data=data,
            webhook_id=request.headers.get("x-shopify-webhook-id"),
            broker=broker,
        )
    except Exception as exc:
        if compliance:
            # Compliance deliveries are acknowledged regardless of local outcome.
            logger.exception("Compliance webhook %s failed for %s", topic, shop_domain)
            return {"ok": True}
        if isinstance(exc, MalformedPayloadError):
            raise HTTPException(status_code=400, detail=exc.message) from exc
        if isinstance(exc, ShopSyncError):
            logger.warning("Webhook %s for %s failed: %s", topic, shop_domain, exc.message)
            raise HTTPException(status_code=exc.kind.http_status, detail=exc.message) from exc
        logger.exception("Webhook %s for %s failed", topic, shop_domain)
        raise HTTPException(status_code=500, detail="Webhook processing failed") from exc

    return {"ok": True, "status": outcome.status}


@router.post("/webhooks/shopify")
async def shopify_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: SyncSettings = Depends(get_settings),
    broker: EventBroker = Depends(get_broker),
):
    return await _receive(request, db, settings, broker)


@router.post("/webhooks/shopify/compliance")
async def compliance_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: SyncSettings = Depends(get_settings),
    broker: EventBroker = Depends(get_broker),
):
    topic = request.headers.get("x-shopify-topic")
    parsed = Topic.parse(topic)
    if parsed is None or not parsed.is_compliance:
        # Still authenticate before saying anything about the request.
        require_valid_hmac(
            await request.body(), request.headers.get(HMAC_HEADER), settings.shopify_api_secret
        )
        raise HTTPException(status_code=400, detail="Unknown compliance topic")
    return await _receive(request, db, settings, broker, topic=parsed.value)


@router.post("/webhooks/shopify/customers-data-request")
async def customers_data_request(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: SyncSettings = Depends(get_settings),
    broker: EventBroker = Depends(get_broker),
):
    return await _receive(request, db, settings, broker, topic=Topic.CUSTOMERS_DATA_REQUEST.value)


@router.post("/webhooks/shopify/customers-redact")
async def customers_redact(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: SyncSettings = Depends(get_settings),
    broker: EventBroker = Depends(get_broker),
):
    return await _receive(request, db, settings, broker, topic=Topic.CUSTOMERS_REDACT.value)


@router.post("/webhooks/shopify/shop-redact")
async def shop_redact(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: SyncSettings = Depends(get_settings),
    broker: EventBroker = Depends(get_broker),
):
    return await _receive(request, db, settings, broker, topic=Topic.SHOP_REDACT.value)
