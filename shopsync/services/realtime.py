"""In-process realtime fan-out, one queue per subscriber per shop."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from ..config import settings

logger = logging.getLogger(__name__)


class Subscription:
    """Async iterator over the events published to one shop."""

    def __init__(self, shop_id: uuid.UUID, queue: asyncio.Queue):
        self.shop_id = shop_id
        self.queue = queue

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> dict[str, Any]:
        return await self.queue.get()

    async def get(self, timeout: float | None = None) -> dict[str, Any]:
        if timeout is None:
            return await self.queue.get()
        return await asyncio.wait_for(self.queue.get(), timeout)


class EventBroker:
    """Single writer, many readers. Publishing never blocks and never fails.

    Subscribers only see events published after they subscribed; a
    reconnecting viewer fetches its backlog from the event table.
    """

    def __init__(self, queue_size: int | None = None):
        self.queue_size = queue_size if queue_size is not None else settings.realtime_queue_size
        self._subscribers: dict[uuid.UUID, set[asyncio.Queue]] = defaultdict(set)

    def publish(self, shop_id: uuid.UUID, event: dict[str, Any]) -> int:
        """Deliver ``event`` to every subscriber of ``shop_id``. Returns deliveries."""
        delivered = 0
        for queue in list(self._subscribers.get(shop_id, ())):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Dropping %s for slow subscriber on shop %s",
                    event.get("event_type"), shop_id,
                )
        return delivered

    @asynccontextmanager
    async def subscribe(self, shop_id: uuid.UUID) -> AsyncIterator[Subscription]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers[shop_id].add(queue)
        try:
            yield Subscription(shop_id, queue)
        finally:
            subscribers = self._subscribers.get(shop_id)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[shop_id]

    def subscriber_count(self, shop_id: uuid.UUID) -> int:
        return len(self._subscribers.get(shop_id, ()))


event_broker = EventBroker()


def get_broker() -> EventBroker:
    """FastAPI dependency returning the process-wide broker."""
    return event_broker
