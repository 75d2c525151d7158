"""Signed-webhook and fake Shopify helpers shared by the tests."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import uuid
from typing import Any

import httpx

WEBHOOK_SECRET = "shpss_test_secret"
SHOP_DOMAIN = "acme.myshopify.com"


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def webhook_request(
    topic: str,
    payload: Any,
    *,
    shop_domain: str = SHOP_DOMAIN,
    secret: str = WEBHOOK_SECRET,
) -> dict[str, Any]:
    """Keyword arguments for ``client.post`` carrying a signed webhook."""
    body = json.dumps(payload).encode("utf-8")
    return {
        "content": body,
        "headers": {
            "Content-Type": "application/json",
            "X-Shopify-Topic": topic,
            "X-Shopify-Shop-Domain": shop_domain,
            "X-Shopify-Hmac-Sha256": sign(body, secret),
            "X-Shopify-Webhook-Id": str(uuid.uuid4()),
        },
    }


class FakeShopify:
    """Route table for ``httpx.MockTransport`` keyed by API path suffix.

    Each route is a list of responses served in order (the last one repeats)
    or a callable taking the request.
    """

    def __init__(self, routes: dict[str, Any]):
        self.routes = routes
        self.requests: list[httpx.Request] = []
        self._served: dict[str, int] = {}

    def calls(self, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, route in self.routes.items():
            if not request.url.path.endswith(suffix):
                continue
            if callable(route):
                return route(request)
            index = self._served.get(suffix, 0)
            self._served[suffix] = index + 1
            return route[min(index, len(route) - 1)]
        return httpx.Response(404, json={"errors": "Not Found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def page(key: str, records: list[dict], next_cursor: str | None = None) -> httpx.Response:
    headers = {}
    if next_cursor:
        headers["Link"] = (
            f'<https://{SHOP_DOMAIN}/admin/api/2024-10/x.json?limit=2&page_info={next_cursor}>; rel="next"'
        )
    return httpx.Response(200, json={key: records}, headers=headers)


def order_payload(order_id: int = 1001, **overrides: Any) -> dict[str, Any]:
    data = {
        "id": order_id,
        "order_number": 1,
        "name": "#1001",
        "email": "jane@example.com",
        "customer": {"id": 501, "email": "jane@example.com"},
        "financial_status": "paid",
        "fulfillment_status": None,
        "total_price": "49.90",
        "subtotal_price": "45.00",
        "total_tax": "4.90",
        "total_discounts": "0.00",
        "currency": "USD",
        "line_items": [{"id": 1, "title": "Mug", "quantity": 2, "price": "22.50"}],
        "shipping_address": {
            "name": "Jane Doe",
            "address1": "1 Main St",
            "city": "Portland",
            "province": "Oregon",
            "province_code": "OR",
            "country": "United States",
            "country_code": "US",
            "zip": "97201",
            "latitude": 45.5152,
            "longitude": -122.6784,
        },
        "billing_address": {"name": "Jane Doe", "address1": "1 Main St"},
        "discount_codes": [],
        "note": "Leave at the door",
        "tags": "vip, repeat",
        "created_at": "2026-09-01T10:00:00-04:00",
        "updated_at": "2026-09-01T10:05:00-04:00",
    }
    data.update(overrides)
    return data


def product_payload(product_id: int = 2001, **overrides: Any) -> dict[str, Any]:
    data = {
        "id": product_id,
        "title": "Ceramic Mug",
        "body_html": "<p>Holds coffee.</p>",
        "vendor": "Acme",
        "product_type": "Kitchen",
        "handle": "ceramic-mug",
        "status": "active",
        "tags": "kitchen, gift",
        "images": [],
        "options": [{"name": "Color", "values": ["Blue"]}],
        "variants": [
            {"id": 3001, "sku": "MUG-BLUE", "inventory_item_id": 4001, "inventory_management": "shopify"}
        ],
        "created_at": "2026-08-01T09:00:00Z",
        "updated_at": "2026-08-02T09:00:00Z",
    }
    data.update(overrides)
    return data


def customer_payload(customer_id: int = 501, **overrides: Any) -> dict[str, Any]:
    data = {
        "id": customer_id,
        "email": "jane@example.com",
        "first_name": "Jane",
        "last_name": "Doe",
        "phone": "+15035550100",
        "orders_count": 3,
        "total_spent": "120.00",
        "currency": "USD",
        "tags": "",
        "accepts_marketing": True,
        "default_address": {"address1": "1 Main St", "city": "Portland"},
        "addresses": [{"address1": "1 Main St", "city": "Portland"}],
        "created_at": "2026-07-01T09:00:00Z",
        "updated_at": "2026-07-02T09:00:00Z",
    }
    data.update(overrides)
    return data


def location_payload(location_id: int = 601, **overrides: Any) -> dict[str, Any]:
    data = {
        "id": location_id,
        "name": "Warehouse",
        "address1": "9 Dock Rd",
        "city": "Portland",
        "province": "Oregon",
        "country": "US",
        "zip": "97203",
        "active": True,
    }
    data.update(overrides)
    return data


def inventory_level_payload(item_id: int = 4001, location_id: int = 601, available: int = 7) -> dict[str, Any]:
    return {
        "inventory_item_id": item_id,
        "location_id": location_id,
        "available": available,
        "updated_at": "2026-09-01T12:00:00Z",
    }
