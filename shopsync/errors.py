"""Error taxonomy shared by the webhook and bulk sync paths.

Every failure the pipeline knows how to classify is raised as a
``ShopSyncError`` carrying an ``ErrorKind``. The boundary that catches it
(HTTP handler or sync ledger writer) decides what the outside world sees.
Anything else, including SQLAlchemy errors, propagates untouched and is
treated as an internal failure.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    UNAUTHORIZED = "unauthorized"
    MALFORMED = "malformed"
    SCOPE_DENIED = "scope_denied"
    UPSTREAM = "upstream"
    STORAGE = "storage"
    NOT_FOUND = "not_found"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.MALFORMED: 400,
    ErrorKind.SCOPE_DENIED: 403,
    ErrorKind.UPSTREAM: 502,
    ErrorKind.STORAGE: 500,
    ErrorKind.NOT_FOUND: 404,
}


class ShopSyncError(Exception):
    """Base exception for classified pipeline errors."""

    kind: ErrorKind = ErrorKind.STORAGE

    def __init__(self, message: str, kind: ErrorKind | None = None):
        self.message = message
        if kind is not None:
            self.kind = kind
        super().__init__(message)


class MalformedPayloadError(ShopSyncError):
    """Inbound body is not the structured payload we expect."""

    kind = ErrorKind.MALFORMED


class ShopNotFoundError(ShopSyncError):
    """No active shop matches the lookup."""

    kind = ErrorKind.NOT_FOUND


class ShopifyAPIError(ShopSyncError):
    """Upstream returned a non-2xx response or the request failed in transit."""

    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str, status_code: int | None = None, response: dict | None = None):
        self.status_code = status_code
        self.response = response
        super().__init__(message)


class ShopifyScopeError(ShopifyAPIError):
    """Upstream denied access (HTTP 403): the granted scopes are insufficient."""

    kind = ErrorKind.SCOPE_DENIED


class PaginationLimitError(ShopifyAPIError):
    """The page cursor did not terminate within the configured page cap."""


class LedgerError(ShopSyncError):
    """A sync ledger entry was updated after reaching a terminal status."""

    kind = ErrorKind.STORAGE
