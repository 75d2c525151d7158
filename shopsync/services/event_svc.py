"""Realtime event emission and backlog queries."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.realtime_event import RealtimeEvent
from ..sync.transforms import utcnow
from .realtime import EventBroker, event_broker

# Event types a viewer can filter on, per resource kind.
EVENT_TYPES: dict[str, tuple[str, ...]] = {
    "order": ("order_created", "order_updated", "order_paid", "order_cancelled", "order_fulfilled"),
    "product": ("product_created", "product_updated", "product_deleted"),
    "customer": ("customer_created", "customer_updated", "customer_deleted"),
    "inventory": ("inventory_updated", "inventory_connected", "inventory_disconnected"),
}

_RESOURCE_BY_PLURAL = {
    "orders": "order",
    "products": "product",
    "customers": "customer",
    "inventory_levels": "inventory",
}

_ACTION_SUFFIX = {
    "create": "created",
    "update": "updated",
    "delete": "deleted",
    "connect": "connected",
    "disconnect": "disconnected",
}


def event_type_for(topic: str) -> tuple[str, str]:
    """Map ``"orders/paid"`` to ``("order", "order_paid")``."""
    plural, _, action = topic.partition("/")
    resource = _RESOURCE_BY_PLURAL.get(plural, plural.rstrip("s"))
    return resource, f"{resource}_{_ACTION_SUFFIX.get(action, action)}"


@dataclass
class EventDraft:
    """Everything needed to emit an event once the upsert has committed."""

    event_type: str
    resource_type: str
    resource_id: uuid.UUID | None
    shopify_id: int | None
    payload: dict[str, Any] = field(default_factory=dict)


def serialize_event(event: RealtimeEvent) -> dict[str, Any]:
    return {
        "id": str(event.id),
        "shop_id": str(event.shop_id),
        "event_type": event.event_type,
        "resource_type": event.resource_type,
        "resource_id": event.resource_id,
        "shopify_id": event.shopify_id,
        "payload": event.payload,
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }


async def emit_event(
    db: AsyncSession,
    shop_id: uuid.UUID,
    draft: EventDraft,
    broker: EventBroker | None = None,
) -> RealtimeEvent:
    """Append one event and fan it out. Call only after the upsert committed."""
    event = RealtimeEvent(
        id=uuid.uuid4(),
        shop_id=shop_id,
        event_type=draft.event_type,
        resource_type=draft.resource_type,
        resource_id=str(draft.resource_id) if draft.resource_id else None,
        shopify_id=draft.shopify_id,
        payload=draft.payload,
        created_at=utcnow(),
    )
    db.add(event)
    await db.commit()
    (broker or event_broker).publish(shop_id, serialize_event(event))
    return event


async def list_recent_events(
    db: AsyncSession,
    shop_id: uuid.UUID,
    *,
    resource: str | None = None,
    limit: int = 50,
) -> list[RealtimeEvent]:
    """Newest first; the backlog a reconnecting viewer loads."""
    stmt = select(RealtimeEvent).where(RealtimeEvent.shop_id == shop_id)
    if resource:
        stmt = stmt.where(RealtimeEvent.event_type.in_(EVENT_TYPES.get(resource, ())))
    stmt = stmt.order_by(RealtimeEvent.created_at.desc()).limit(limit)
    return list((await db.execute(stmt)).scalars().all())
