"""
Shared utility functions for parsing and data manipulation

Provides common helpers for:
- String parsing: Environment variable conversion (parse_float)
- Cache key sanitization: Turning configured cache keys into file-safe slot names
"""

from __future__ import annotations

import hashlib
import re

_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9_.-]+")


def sanitize_cache_key(key: str) -> str:
    """Convert a cache key into a file-safe slot name.

    Keys that had to be altered get a short digest of the original appended,
    so two distinct keys never share a slot.
    """
    cleaned = _UNSAFE_KEY_CHARS.sub("_", key.lower()).strip("._")
    if cleaned == key:
        return cleaned
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:8]
    return f"{cleaned or 'default'}-{digest}"


def parse_float(value: str | None, default: float) -> float:
    """Best-effort float parser with fallback."""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
