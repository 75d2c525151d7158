"""Cron-triggered maintenance endpoints."""

from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import SyncSettings, get_settings
from ..database import get_db
from ..schemas.sync import RedactionResult
from ..services.redaction_svc import run_pii_redaction

router = APIRouter(prefix="/cron", tags=["cron"])


def verify_cron_secret(request: Request, settings: SyncSettings = Depends(get_settings)) -> None:
    if not settings.cron_secret:
        raise HTTPException(status_code=500, detail="Cron secret is not configured")
    auth = request.headers.get("authorization", "")
    expected = f"Bearer {settings.cron_secret}"
    if not hmac.compare_digest(auth.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/redact-pii", response_model=RedactionResult, dependencies=[Depends(verify_cron_secret)])
async def redact_pii(
    db: AsyncSession = Depends(get_db),
    settings: SyncSettings = Depends(get_settings),
):
    report = await run_pii_redaction(db, settings)
    return RedactionResult(
        shops_processed=report.shops_processed,
        orders_redacted=report.orders_redacted,
        customers_redacted=report.customers_redacted,
        errors=report.errors,
    )
