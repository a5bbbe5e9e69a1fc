"""
Expiration header embedded in stored payloads.

A payload stored with a TTL starts with a fixed-width header:

    <13-digit creation time in ms><'-'><ttl seconds><' '><payload bytes>

e.g. ``b"1700000000000-60 hello"``. Payloads without the header never
expire. Parsing fails open: a header that looks structurally valid but
carries garbage in its numeric fields is treated as "not expired" so that
legacy or corrupted data is never destroyed by misinterpretation.
"""

import logging
import time
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

TIMESTAMP_WIDTH = 13
TTL_MARKER = ord("-")
SEPARATOR = b" "


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def encode(ttl_seconds: Optional[int], payload: bytes, now: Optional[int] = None) -> bytes:
    """
    Prepend an expiration header to payload.

    Args:
        ttl_seconds: Time-to-live in seconds; None or <= 0 means never expire
        payload: Raw bytes to store
        now: Creation time in epoch ms (default: current time)

    Returns:
        Header + payload, or payload unchanged when no TTL applies
    """
    if not ttl_seconds or ttl_seconds <= 0:
        return payload

    created = now_ms() if now is None else now
    header = f"{created:0{TIMESTAMP_WIDTH}d}-{int(ttl_seconds)}".encode("ascii")
    return header + SEPARATOR + payload


def has_header(data: bytes) -> bool:
    """Check the structural markers of an expiration header."""
    return (
        data is not None
        and len(data) > 15
        and data[TIMESTAMP_WIDTH] == TTL_MARKER
        and data.find(SEPARATOR) > 14
    )


def parse_header(data: bytes) -> Optional[Tuple[int, int]]:
    """
    Extract (created_ms, ttl_seconds) from a payload.

    Returns:
        Tuple of creation time and TTL, or None if the payload has no
        header or its numeric fields are malformed
    """
    if not has_header(data):
        return None

    created_field = data[:TIMESTAMP_WIDTH]
    ttl_field = data[TIMESTAMP_WIDTH + 1:data.find(SEPARATOR)]
    # int() would also accept signs, whitespace and underscores
    if not (created_field.isdigit() and ttl_field.isdigit()):
        logger.debug(f"Ignoring malformed expiration header: {data[:32]!r}")
        return None

    return int(created_field), int(ttl_field)


def is_expired(data: bytes, now: Optional[int] = None) -> bool:
    """
    Check whether a stored payload has outlived its TTL.

    Args:
        data: Stored bytes, with or without a header
        now: Reference time in epoch ms (default: current time)

    Returns:
        True only if a valid header is present and now > created + ttl
    """
    header = parse_header(data)
    if header is None:
        return False

    created, ttl_seconds = header
    current = now_ms() if now is None else now
    return current > created + ttl_seconds * 1000


def strip(data: bytes) -> bytes:
    """Remove the expiration header if present."""
    if has_header(data):
        return data[data.find(SEPARATOR) + 1:]
    return data
