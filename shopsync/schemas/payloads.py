"""Typed views over Shopify webhook and REST payloads.

Each resource kind gets its own model. Unknown fields are ignored and the
upstream id is required, so a payload without one is rejected at parse time
instead of reaching the store as a null key.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from ..errors import MalformedPayloadError


class ShopifyPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class AddressPayload(ShopifyPayload):
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    province: str | None = None
    province_code: str | None = None
    country: str | None = None
    country_code: str | None = None
    zip: str | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None


class CustomerRef(ShopifyPayload):
    id: int
    email: str | None = None
    phone: str | None = None


class OrderPayload(ShopifyPayload):
    id: int
    order_number: int | None = None
    name: str | None = None
    email: str | None = None
    customer: CustomerRef | None = None
    financial_status: str | None = None
    fulfillment_status: str | None = None
    total_price: Decimal = Decimal("0")
    subtotal_price: Decimal | None = None
    total_tax: Decimal | None = None
    total_discounts: Decimal | None = None
    currency: str | None = None
    line_items: list[dict[str, Any]] = []
    shipping_address: dict[str, Any] | None = None
    billing_address: dict[str, Any] | None = None
    discount_codes: list[dict[str, Any]] = []
    note: str | None = None
    tags: str | None = None
    cancelled_at: datetime | None = None
    closed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductPayload(ShopifyPayload):
    id: int
    title: str = ""
    body_html: str | None = None
    vendor: str | None = None
    product_type: str | None = None
    handle: str | None = None
    status: str | None = None
    tags: str | None = None
    images: list[dict[str, Any]] = []
    options: list[dict[str, Any]] = []
    variants: list[dict[str, Any]] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CustomerPayload(ShopifyPayload):
    id: int
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    orders_count: int = 0
    total_spent: Decimal = Decimal("0")
    currency: str | None = None
    tags: str | None = None
    accepts_marketing: bool = False
    default_address: dict[str, Any] | None = None
    addresses: list[dict[str, Any]] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LocationPayload(ShopifyPayload):
    id: int
    name: str = ""
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None
    zip: str | None = None
    active: bool = True


class InventoryLevelPayload(ShopifyPayload):
    inventory_item_id: int
    location_id: int
    available: int | None = None
    updated_at: datetime | None = None


class DeletePayload(ShopifyPayload):
    """Body of products/delete and customers/delete."""

    id: int


class ComplianceCustomer(ShopifyPayload):
    """Customer reference on compliance topics; every field may be absent."""

    id: int | None = None
    email: str | None = None
    phone: str | None = None


class DataRequestPayload(ShopifyPayload):
    shop_id: int | None = None
    shop_domain: str | None = None
    customer: ComplianceCustomer | None = None
    orders_requested: list[int] = []
    data_request: dict[str, Any] | None = None


class CustomerRedactPayload(ShopifyPayload):
    shop_id: int | None = None
    shop_domain: str | None = None
    customer: ComplianceCustomer | None = None
    orders_to_redact: list[int] = []


class ShopRedactPayload(ShopifyPayload):
    shop_id: int | None = None
    shop_domain: str | None = None


PayloadT = TypeVar("PayloadT", bound=ShopifyPayload)


def parse_payload(model: type[PayloadT], data: Any) -> PayloadT:
    """Validate ``data`` as ``model`` or raise ``MalformedPayloadError``."""
    if not isinstance(data, dict):
        raise MalformedPayloadError(f"{model.__name__}: expected a JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise MalformedPayloadError(f"{model.__name__}: invalid fields ({fields})") from exc
