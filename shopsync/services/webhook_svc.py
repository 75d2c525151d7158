"""Webhook intake: audit log entry around each routed delivery."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import MalformedPayloadError
from ..models.webhook_log import WebhookLog
from ..sync.handlers import WebhookOutcome, route_webhook
from ..sync.transforms import utcnow
from .realtime import EventBroker

logger = logging.getLogger(__name__)


def parse_body(raw_body: bytes) -> dict[str, Any]:
    """Decode a webhook body into a JSON object or raise ``MalformedPayloadError``."""
    try:
        data = json.loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedPayloadError("Webhook body is not valid JSON") from exc
    if not isinstance(data, dict):
        raise MalformedPayloadError("Webhook body must be a JSON object")
    return data


async def handle_webhook(
    db: AsyncSession,
    *,
    topic: str,
    shop_domain: str,
    data: dict[str, Any],
    webhook_id: str | None = None,
    broker: EventBroker | None = None,
) -> WebhookOutcome:
    """Log, route and mark one verified delivery.

    The log entry is committed before routing so a failed delivery still
    leaves a trace; the failure is recorded on it and re-raised.
    """
    entry = WebhookLog(
        id=uuid.uuid4(),
        shop_domain=shop_domain,
        topic=topic,
        shopify_webhook_id=webhook_id,
        payload=data,
        processed=False,
        received_at=utcnow(),
    )
    db.add(entry)
    await db.commit()
    logger.info("Received webhook %s from %s", topic, shop_domain)

    try:
        outcome = await route_webhook(
            db, topic, shop_domain, data, broker=broker, log_id=entry.id
        )
    except Exception as exc:
        await db.rollback()
        entry.error_message = f"{type(exc).__name__}: {exc}"[:2000]
        await db.commit()
        raise

    entry.processed = True
    if outcome.shop_id is not None:
        entry.shop_id = outcome.shop_id
    await db.commit()
    return outcome
