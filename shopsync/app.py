"""FastAPI application factory for the Shopify sync service."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .sync.scheduler import sync_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        from .database import engine
        from .models import Base
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    sync_scheduler.start()
    try:
        yield
    finally:
        await sync_scheduler.stop()


app = FastAPI(title=settings.app_title, lifespan=lifespan)

# Import and register routers
from .routers import cron, events, health, sync, webhooks  # noqa: E402

app.include_router(webhooks.router)
app.include_router(sync.router)
app.include_router(events.router)
app.include_router(cron.router)
app.include_router(health.router)
