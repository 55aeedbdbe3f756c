"""Helpers for safe debug logging.

Stores hold arbitrary application state, which may include credentials.
:func:`redact_changes` turns the changes of one update into short,
log-safe strings before they reach a DEBUG log line.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

_SENSITIVE_KEY_PARTS: tuple[str, ...] = (
    "password",
    "passwd",
    "secret",
    "token",
    "apikey",
    "authorization",
    "cookie",
    "session",
)

_SCALARS = (str, int, float, bool, type(None))


def is_sensitive_key(key: Any) -> bool:
    """Store keys are arbitrary hashables; only their text form is inspected."""
    text = str(key).lower().replace("_", "").replace("-", "")
    return any(part in text for part in _SENSITIVE_KEY_PARTS)


def _describe(value: Any, max_string: int) -> str:
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, _SCALARS):
        text = repr(value)
        if len(text) > max_string:
            return f"{text[:max_string]}…<truncated>"
        return text
    # The store is flat: nested containers are summarised, never walked.
    if isinstance(value, Mapping):
        return f"<{type(value).__name__}:{len(value)} keys>"
    if isinstance(value, Collection):
        return f"<{type(value).__name__}:{len(value)} items>"
    return f"<{type(value).__name__}>"


def redact_changes(changes: Mapping[Any, Any], *, max_string: int = 120) -> dict[str, str]:
    """Render ``key -> value`` changes of one update for a debug log."""
    return {
        str(key): "<redacted>" if is_sensitive_key(key) else _describe(value, max_string)
        for key, value in changes.items()
    }
