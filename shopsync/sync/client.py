"""Shopify Admin REST client.

Thin wrapper over ``httpx.AsyncClient``: auth header, error
classification and cursor pagination via the ``Link`` response header.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, AsyncIterator, Awaitable, Callable

import httpx

from ..config import SyncSettings, settings as default_settings
from ..errors import PaginationLimitError, ShopifyAPIError, ShopifyScopeError

logger = logging.getLogger(__name__)

_NEXT_PAGE_RE = re.compile(r'<[^>]*page_info=([^>&]*)[^>]*>;\s*rel="next"')


def next_page_info(link_header: str | None) -> str | None:
    """Extract the ``rel="next"`` cursor from a Shopify ``Link`` header."""
    if not link_header:
        return None
    match = _NEXT_PAGE_RE.search(link_header)
    return match.group(1) if match else None


class ShopifyClient:
    """Async client for one shop's Admin API.

    Usage::

        async with ShopifyClient("acme.myshopify.com", token) as client:
            async for page in client.paginate("/products.json", "products"):
                ...
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        *,
        settings: SyncSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.settings = settings or default_settings
        self.shop_domain = shop_domain
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=f"https://{shop_domain}/admin/api/{self.settings.shopify_api_version}",
            headers={
                "X-Shopify-Access-Token": access_token,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=self.settings.sync_http_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "ShopifyClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise ShopifyAPIError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            body = _safe_json(response)
            message = f"{method} {path} returned {response.status_code}: {_error_text(body, response)}"
            if response.status_code == 403:
                raise ShopifyScopeError(message, status_code=403, response=body)
            raise ShopifyAPIError(message, status_code=response.status_code, response=body)
        return response

    async def get(self, path: str, params: dict[str, Any] | None = None) -> tuple[dict, httpx.Headers]:
        response = await self.request("GET", path, params=params)
        return _safe_json(response) or {}, response.headers

    async def post(self, path: str, json: dict[str, Any]) -> dict:
        response = await self.request("POST", path, json=json)
        return _safe_json(response) or {}

    async def paginate(
        self,
        path: str,
        key: str,
        params: dict[str, Any] | None = None,
    ) -> AsyncIterator[list[dict[str, Any]]]:
        """Yield one list of records per page until the cursor runs out.

        Continuation requests carry only ``limit`` and ``page_info``; Shopify
        rejects filter params alongside a cursor.
        """
        limit = self.settings.sync_page_size
        max_pages = self.settings.sync_max_pages
        request_params: dict[str, Any] = {**(params or {}), "limit": limit}
        pages = 0
        while True:
            data, headers = await self.get(path, request_params)
            pages += 1
            yield data.get(key) or []

            cursor = next_page_info(headers.get("link"))
            if not cursor:
                return
            if pages >= max_pages:
                raise PaginationLimitError(
                    f"{path}: still paginating after {pages} pages, giving up"
                )
            await self._sleep(self.settings.sync_page_delay_seconds)
            request_params = {"limit": limit, "page_info": cursor}

    async def get_shop(self) -> dict[str, Any]:
        data, _ = await self.get("/shop.json")
        return data.get("shop") or {}


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_text(body: Any, response: httpx.Response) -> str:
    if isinstance(body, dict) and body.get("errors") is not None:
        return str(body["errors"])
    return response.text[:500]
