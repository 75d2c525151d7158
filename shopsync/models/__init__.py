"""Shopsync models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin, ShopifySyncMixin
from .shop import Shop
from .catalog import Location, Product
from .customer import Customer
from .order import Order
from .inventory import InventoryItem, InventoryLevel
from .realtime_event import RealtimeEvent
from .sync_log import SyncLog
from .webhook_log import WebhookLog

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "TenantMixin",
    "ShopifySyncMixin",
    "Shop",
    "Location",
    "Product",
    "Customer",
    "Order",
    "InventoryItem",
    "InventoryLevel",
    "RealtimeEvent",
    "SyncLog",
    "WebhookLog",
]
