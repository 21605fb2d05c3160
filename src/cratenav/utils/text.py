"""Text helpers turning arbitrary JSON values into searchable strings."""

from __future__ import annotations

import re
from typing import Any, Mapping

DEFAULT_MAX_DEPTH = 10
CONTEXT_KEY = "@context"

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    return _WHITESPACE.sub(" ", text).strip()


def flatten_value(value: Any, depth: int = 0, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """Recursively flatten a JSON value into a single string.

    Object keys are emitted alongside their values so property names are
    searchable too. Anything nested deeper than ``max_depth`` contributes
    nothing, which keeps pathological structures bounded.
    """
    if depth > max_depth or value is None:
        return ""

    if isinstance(value, str):
        return value

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (int, float)):
        return str(value)

    if isinstance(value, (list, tuple)):
        parts = (flatten_value(item, depth + 1, max_depth) for item in value)
        return " ".join(part for part in parts if part)

    if isinstance(value, Mapping):
        parts: list[str] = []
        for key, item in value.items():
            if not key or key == CONTEXT_KEY:
                continue
            parts.append(str(key))
            flattened = flatten_value(item, depth + 1, max_depth)
            if flattened:
                parts.append(flattened)
        return " ".join(parts)

    return ""


def extract_searchable_content(entity: Mapping[str, Any], *, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """Return all keys and values of an entity as one normalized string."""
    parts: list[str] = []
    for key, value in entity.items():
        if key == CONTEXT_KEY:
            continue
        parts.append(str(key))
        flattened = flatten_value(value, 0, max_depth)
        if flattened:
            parts.append(flattened)
    return normalize_whitespace(" ".join(parts))
