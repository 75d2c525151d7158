"""Settings loading and derived properties."""

from __future__ import annotations

import pytest

from shopsync.config import SyncSettings


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("SHOPSYNC_SYNC_PAGE_SIZE", "50")
    monkeypatch.setenv("SHOPSYNC_ENVIRONMENT", "Production")

    cfg = SyncSettings(_env_file=None)

    assert cfg.sync_page_size == 50
    assert cfg.is_production is True


@pytest.mark.parametrize(
    ("environment", "expected"),
    [("development", False), ("prod", True), (" PRODUCTION ", True), ("staging", False)],
)
def test_is_production(environment, expected):
    assert SyncSettings(_env_file=None, environment=environment).is_production is expected


def test_webhook_address_strips_trailing_slash():
    cfg = SyncSettings(_env_file=None, public_url="https://sync.example.com/")
    assert cfg.webhook_address == "https://sync.example.com/webhooks/shopify"


def test_auto_create_tables_only_for_sqlite_outside_production():
    assert SyncSettings(_env_file=None).auto_create_tables is True
    assert SyncSettings(_env_file=None, environment="production").auto_create_tables is False
    assert (
        SyncSettings(
            _env_file=None, database_url="postgresql+asyncpg://u:p@db/shopsync"
        ).auto_create_tables
        is False
    )
