"""Typed view over raw JSON-LD entity values."""

from __future__ import annotations

from typing import AbstractSet, Any, Dict, List, Mapping

from cratenav.models import Entity, LinkHint, ListValue, LiteralValue, Nested, Reference, Value


def to_value(raw: Any, references: AbstractSet[str] = frozenset()) -> Value:
    """Map a raw JSON value onto the tagged value variant.

    ``{"@id": ...}`` objects are always references. Bare strings become
    references only when listed in ``references``, the ids the link hints
    resolved for the property holding them.
    """
    if isinstance(raw, dict):
        if set(raw) == {"@id"} and isinstance(raw["@id"], str):
            return Reference(raw["@id"])
        return Nested({str(key): to_value(item) for key, item in raw.items()})
    if isinstance(raw, (list, tuple)):
        return ListValue(tuple(to_value(item, references) for item in raw))
    if raw is None:
        return LiteralValue("")
    if isinstance(raw, str) and raw in references:
        return Reference(raw)
    if isinstance(raw, (str, int, float, bool)):
        return LiteralValue(raw)
    return LiteralValue(str(raw))


def entity_values(entity: Entity, hints: Mapping[str, LinkHint] | None = None) -> Dict[str, Value]:
    hints = hints or {}
    return {
        key: to_value(value, hints[key].value_iris if key in hints else frozenset())
        for key, value in entity.items()
    }


def render_value(value: Value) -> str:
    """Compact single-line text for a value."""
    if isinstance(value, Reference):
        return value.id
    if isinstance(value, ListValue):
        return ", ".join(render_value(item) for item in value.items)
    if isinstance(value, Nested):
        inner = ", ".join(f"{key}: {render_value(item)}" for key, item in value.properties.items())
        return f"{{{inner}}}"
    if isinstance(value.value, bool):
        return "true" if value.value else "false"
    return str(value.value)


def value_to_dict(value: Value) -> Dict[str, Any]:
    """Serialise a value with its variant tag, e.g. ``{"type": "reference", "id": "#p"}``."""
    if isinstance(value, Reference):
        return {"type": "reference", "id": value.id}
    if isinstance(value, ListValue):
        return {"type": "list", "items": [value_to_dict(item) for item in value.items]}
    if isinstance(value, Nested):
        return {
            "type": "nested",
            "properties": {key: value_to_dict(item) for key, item in value.properties.items()},
        }
    return {"type": "literal", "value": value.value}


def as_list(raw: Any) -> List[Any]:
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    return [raw]


def reference_id(raw: Any) -> str | None:
    """Reduce a bare id string or an ``{"@id": ...}`` object to its id."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict) and isinstance(raw.get("@id"), str):
        return raw["@id"]
    return None


def type_names(entity: Entity) -> List[str]:
    return [item for item in as_list(entity.get("@type")) if isinstance(item, str)]
