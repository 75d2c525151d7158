"""shopsync CLI - operator entry point."""

import asyncio
import json
import logging
import uuid
from datetime import timedelta
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import settings

app = typer.Typer(
    name="shopsync",
    help="Shopify sync and webhook pipeline",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _output_result(result: dict[str, Any]) -> None:
    console.print_json(json.dumps(result, default=str))


async def _with_session(fn):
    from .database import async_session_factory, engine
    from .models import Base

    if settings.auto_create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    async with async_session_factory() as db:
        return await fn(db)


@app.command("install")
def install(
    shop_domain: str = typer.Argument(..., help="e.g. acme.myshopify.com"),
    access_token: str = typer.Option(..., "--token", "-t", help="Offline access token"),
    scope: str = typer.Option("", "--scope", "-s", help="Granted scopes, comma separated"),
    no_sync: bool = typer.Option(False, "--no-sync", help="Skip the initial backfill"),
):
    """Store a shop session, register webhooks and run the initial sync."""
    from .services.install_svc import install_shop

    async def _run(db):
        return await install_shop(db, shop_domain, access_token, scope, run_sync=not no_sync)

    result = asyncio.run(_with_session(_run))
    console.print(f"[green]Installed[/green] {result.shop.shop_domain} ({result.shop.id})")
    if result.registration is not None:
        console.print(
            f"Webhooks: {len(result.registration.registered)} registered, "
            f"{len(result.registration.skipped)} skipped, {len(result.registration.failed)} failed"
        )
    if result.sync is not None:
        _output_result({"statuses": result.sync.statuses, "counts": result.sync.counts})


@app.command("sync")
def sync(
    shop_id: str = typer.Argument(..., help="Local shop id"),
):
    """Run a full bulk sync for one shop in the foreground."""
    from .sync.bulk import run_bulk_sync

    async def _run(db):
        return await run_bulk_sync(db, uuid.UUID(shop_id), sync_type="manual")

    report = asyncio.run(_with_session(_run))
    _output_result(
        {"run_id": report.run_id, "statuses": report.statuses, "counts": report.counts, "errors": report.errors}
    )


@app.command("status")
def status(
    shop_id: str = typer.Argument(..., help="Local shop id"),
    limit: int = typer.Option(20, "--limit", "-n"),
):
    """Show recent sync ledger entries."""
    from .services.ledger_svc import list_logs

    async def _run(db):
        return await list_logs(db, uuid.UUID(shop_id), limit=limit)

    logs = asyncio.run(_with_session(_run))
    table = Table(title="Sync log")
    table.add_column("Started")
    table.add_column("Type")
    table.add_column("Resource")
    table.add_column("Status")
    table.add_column("Records", justify="right")
    table.add_column("Error")
    colors = {"completed": "green", "failed": "red", "running": "yellow"}
    for log in logs:
        color = colors.get(log.status, "white")
        table.add_row(
            log.started_at.strftime("%Y-%m-%d %H:%M:%S") if log.started_at else "",
            log.sync_type,
            log.resource_type,
            f"[{color}]{log.status}[/{color}]",
            str(log.records_synced),
            log.error_message or "",
        )
    console.print(table)


@app.command("register-webhooks")
def register_webhooks_cmd(
    shop_domain: str = typer.Argument(..., help="e.g. acme.myshopify.com"),
):
    """(Re)register webhook subscriptions for an installed shop."""
    from .services.session_svc import get_shop_by_domain
    from .sync.client import ShopifyClient
    from .sync.registration import register_webhooks

    if not settings.public_url:
        console.print("[red]SHOPSYNC_PUBLIC_URL is not set[/red]")
        raise typer.Exit(1)

    async def _run(db):
        shop = await get_shop_by_domain(db, shop_domain)
        if shop is None:
            return None
        async with ShopifyClient(shop.shop_domain, shop.access_token) as client:
            return await register_webhooks(client, settings.webhook_address)

    result = asyncio.run(_with_session(_run))
    if result is None:
        console.print(f"[red]No active shop {shop_domain}[/red]")
        raise typer.Exit(1)
    _output_result({"registered": result.registered, "skipped": result.skipped, "failed": result.failed})


@app.command("reconcile")
def reconcile(
    minutes: Optional[int] = typer.Option(
        None, "--older-than", help="Minutes without heartbeat (default from settings)"
    ),
):
    """Fail sync ledger entries left running by a dead process."""
    from .services.ledger_svc import reconcile_stale_runs

    older_than = timedelta(minutes=minutes or settings.sync_stale_after_minutes)

    async def _run(db):
        return await reconcile_stale_runs(db, older_than)

    count = asyncio.run(_with_session(_run))
    console.print(f"Marked {count} stale entries as failed")


@app.command("redact-pii")
def redact_pii():
    """Scrub PII from orders outside the retention window."""
    from .services.redaction_svc import run_pii_redaction

    async def _run(db):
        return await run_pii_redaction(db)

    report = asyncio.run(_with_session(_run))
    _output_result(
        {
            "shops_processed": report.shops_processed,
            "orders_redacted": report.orders_redacted,
            "customers_redacted": report.customers_redacted,
            "errors": report.errors,
        }
    )


if __name__ == "__main__":
    app()
