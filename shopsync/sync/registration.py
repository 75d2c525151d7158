"""Webhook subscription registration with Shopify."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..errors import ShopifyAPIError
from .client import ShopifyClient

logger = logging.getLogger(__name__)

STANDARD_TOPICS = (
    "products/create",
    "products/update",
    "products/delete",
    "inventory_levels/update",
    "inventory_levels/connect",
    "inventory_levels/disconnect",
    "app/uninstalled",
)

# Require protected customer data access, which many shops never grant.
PROTECTED_TOPICS = (
    "orders/create",
    "orders/updated",
    "orders/paid",
    "orders/cancelled",
    "orders/fulfilled",
    "customers/create",
    "customers/update",
    "customers/delete",
)

_PROTECTED_REFUSALS = ("protected customer data", "do not have permission")


@dataclass
class RegistrationResult:
    registered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


async def register_webhooks(client: ShopifyClient, address: str) -> RegistrationResult:
    """Subscribe ``address`` to every topic we handle.

    Topics that are already registered count as registered. Protected
    topics refused for lack of access are skipped, not failed.
    """
    result = RegistrationResult()
    for topic in STANDARD_TOPICS + PROTECTED_TOPICS:
        body = {"webhook": {"topic": topic, "address": address, "format": "json"}}
        try:
            await client.post("/webhooks.json", body)
        except ShopifyAPIError as exc:
            text = str(exc.response or exc.message).lower()
            if exc.status_code == 422 and "already been taken" in text:
                result.registered.append(topic)
            elif topic in PROTECTED_TOPICS and (
                exc.status_code == 403 or any(r in text for r in _PROTECTED_REFUSALS)
            ):
                logger.info("Skipping protected topic %s for %s", topic, client.shop_domain)
                result.skipped.append(topic)
            else:
                logger.warning("Failed to register %s for %s: %s", topic, client.shop_domain, exc)
                result.failed[topic] = exc.message
            continue
        result.registered.append(topic)

    logger.info(
        "Webhook registration for %s: %d registered, %d skipped, %d failed",
        client.shop_domain, len(result.registered), len(result.skipped), len(result.failed),
    )
    return result
