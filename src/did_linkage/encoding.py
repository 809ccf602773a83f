"""Base64url, multibase and canonical JSON helpers."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

import base58


def b64url_decode(data: str) -> bytes:
    """Decode base64url without padding.

    Raises:
        ValueError: If ``data`` is not valid base64url.
    """
    padding = 4 - (len(data) % 4)
    if padding != 4:
        data += "=" * padding
    try:
        return base64.urlsafe_b64decode(data.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64url data: {e}") from e


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def multibase_decode(value: str) -> bytes:
    """Decode a multibase string (base58btc ``z`` or base64url ``u``)."""
    if not value:
        raise ValueError("empty multibase value")
    prefix, body = value[0], value[1:]
    if prefix == "z":
        return base58.b58decode(body)
    if prefix == "u":
        return b64url_decode(body)
    raise ValueError(f"unsupported multibase prefix: {prefix}")


def canonicalize_json(data: Any) -> str:
    """Canonicalize JSON according to JCS (RFC 8785)."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
