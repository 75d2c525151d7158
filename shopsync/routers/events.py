"""Realtime event backlog and Server-Sent Events stream."""

from __future__ import annotations

import asyncio
import json
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import StreamingResponse

from ..config import SyncSettings, get_settings
from ..database import get_db
from ..schemas.sync import RealtimeEventOut
from ..services.event_svc import EVENT_TYPES, list_recent_events
from ..services.realtime import EventBroker, get_broker
from ..services.session_svc import get_shop_by_id

router = APIRouter(prefix="/shops/{shop_id}/events", tags=["events"])

KEEPALIVE_SECONDS = 15.0


def _check_resource(resource: str | None) -> None:
    if resource is not None and resource not in EVENT_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown resource {resource!r}")


async def _require_shop(db: AsyncSession, shop_id: uuid.UUID) -> None:
    if await get_shop_by_id(db, shop_id) is None:
        raise HTTPException(status_code=404, detail="Shop not found")


@router.get("", response_model=list[RealtimeEventOut])
async def recent_events(
    shop_id: uuid.UUID,
    resource: str | None = None,
    limit: int | None = None,
    db: AsyncSession = Depends(get_db),
    settings: SyncSettings = Depends(get_settings),
):
    _check_resource(resource)
    await _require_shop(db, shop_id)
    limit = limit or settings.realtime_backlog_limit
    return await list_recent_events(db, shop_id, resource=resource, limit=min(max(limit, 1), 500))


@router.get("/stream")
async def stream_events(
    shop_id: uuid.UUID,
    request: Request,
    resource: str | None = None,
    db: AsyncSession = Depends(get_db),
    broker: EventBroker = Depends(get_broker),
):
    _check_resource(resource)
    await _require_shop(db, shop_id)
    wanted = set(EVENT_TYPES[resource]) if resource else None

    async def event_stream():
        async with broker.subscribe(shop_id) as subscription:
            yield ": connected\n\n"
            while not await request.is_disconnected():
                try:
                    event = await subscription.get(timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if wanted is not None and event.get("event_type") not in wanted:
                    continue
                yield f"event: {event['event_type']}\ndata: {json.dumps(event, default=str)}\n\n"

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
