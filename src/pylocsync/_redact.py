"""Helpers for safe debug logging.

Every save-location request carries a bearer token in its headers. The
transport traces flat header and payload mappings plus the raw response
text; this module masks credentials and clips long bodies before they reach
DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "token",
        "auth_token",
    }
)

REDACTED = "<redacted>"


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...<+{len(text) - limit} chars>"


def redact_for_log(value: Mapping[str, Any] | str, *, max_string: int = 512) -> dict[str, Any] | str:
    """Return a log-safe copy of a traced mapping or response body.

    Mapping keys are matched case-insensitively; string values are clipped
    to *max_string* characters. Other values (coordinates) pass through.
    """
    if isinstance(value, str):
        return _clip(value, max_string)

    redacted: dict[str, Any] = {}
    for key, item in value.items():
        if key.lower() in _SENSITIVE_KEYS:
            redacted[key] = REDACTED
        elif isinstance(item, str):
            redacted[key] = _clip(item, max_string)
        else:
            redacted[key] = item
    return redacted
