"""Turn normalization: request input to the turns sent to the Live API."""

from __future__ import annotations

from typing import Any

DEFAULT_GREETING = "Hello!"


def normalize_turns(raw: Any, default: str = DEFAULT_GREETING) -> list[str]:
    """Return a non-empty, ordered list of user turns.

    A non-empty list of strings is used as-is and a non-empty string becomes
    a single turn. Anything else (missing, empty, wrong type) falls back to
    `[default]`.
    """
    if isinstance(raw, str):
        return [raw] if raw else [default]
    if isinstance(raw, (list, tuple)) and raw and all(isinstance(t, str) for t in raw):
        return list(raw)
    return [default]
