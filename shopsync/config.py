"""shopsync configuration via pydantic-settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class SyncSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///shopsync.db"
    echo_sql: bool = False
    app_title: str = "shopsync"
    log_level: str = "INFO"

    # Shopify app credentials. The API secret doubles as the webhook signing key.
    shopify_api_key: str = ""
    shopify_api_secret: str = ""
    shopify_api_version: str = "2024-10"
    public_url: str = ""

    # Bulk sync
    sync_days: int = 90
    sync_page_size: int = 250
    sync_page_delay_seconds: float = 0.5
    sync_max_pages: int = 1000
    sync_http_timeout_seconds: float = 30.0
    sync_stale_after_minutes: int = 60

    # Periodic re-sync (off by default; installation triggers the first sync)
    sync_schedule_enabled: bool = False
    sync_schedule_interval_hours: int = 24
    sync_scheduler_poll_seconds: float = 60.0

    # Realtime fan-out
    realtime_queue_size: int = 100
    realtime_backlog_limit: int = 50

    # PII retention
    redaction_keep_recent: int = 100
    redaction_batch_size: int = 200
    cron_secret: str = ""

    model_config = {"env_prefix": "SHOPSYNC_", "env_file": ".env", "extra": "ignore"}

    @property
    def webhook_address(self) -> str:
        return f"{self.public_url.rstrip('/')}/webhooks/shopify"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}

    @property
    def auto_create_tables(self) -> bool:
        """SQLite outside production gets its schema from the models, not Alembic."""
        return "sqlite" in self.database_url and not self.is_production


settings = SyncSettings()


def get_settings() -> SyncSettings:
    """FastAPI dependency returning the process-wide settings object."""
    return settings
