"""Helpers for safe debug logging.

livedash handles bearer tokens and API keys on every sign-in.  This module
provides a small utility to redact sensitive fields before emitting DEBUG
logs.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "apikey",
        "key",
        "token",
        "idtoken",
        "refreshtoken",
        "accesstoken",
        "customtoken",
        "authtoken",
        "authorization",
        "cookie",
    }
)

# Base64url JOSE header, payload and (possibly empty) signature.
_JWT_PATTERN = re.compile(r"eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*")


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Values under sensitive keys are replaced, and JWT-shaped substrings are
    masked in every string, e.g. a token echoed inside an error message.
    """
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        value = _JWT_PATTERN.sub("<redacted-jwt>", value)
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower().replace("_", "") in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    # Fallback: represent unknown objects without dumping internals.
    return repr(value)
