"""Shopify webhook signature validation."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac

from fastapi import HTTPException

HMAC_HEADER = "x-shopify-hmac-sha256"


def verify_hmac(raw_body: bytes, provided: str | None, secret: str | None) -> bool:
    """Check ``provided`` against the body digest. Never raises.

    ``raw_body`` must be the bytes exactly as received; a re-serialized
    JSON document will not produce the same digest.
    """
    if not secret or not provided:
        return False
    provided = provided.strip()
    try:
        provided_digest = base64.b64decode(provided, validate=True)
    except (binascii.Error, ValueError):
        return False
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return hmac.compare_digest(provided_digest, expected)


def require_valid_hmac(raw_body: bytes, provided: str | None, secret: str | None) -> None:
    """Raise 401 unless the Shopify signature matches."""
    if not provided:
        raise HTTPException(status_code=401, detail="Missing Shopify signature")
    if not verify_hmac(raw_body, provided, secret):
        # Same response whether the secret is unset or the digest differs.
        raise HTTPException(status_code=401, detail="Invalid Shopify signature")
