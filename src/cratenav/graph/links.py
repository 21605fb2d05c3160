"""Precompute which entity properties hold references to other entities.

Shorthand property names are not self-describing: ``author`` may hold a
literal string in one crate and a reference to a ``Person`` in another. The
expanded JSON-LD form settles it, so hints are derived once per document by
matching each shorthand property to its full IRI and reading the expanded
values that are node objects.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence

from cratenav.models import ROOT_IDS, CrateDocument, LinkHint, LinkHints

LOGGER = logging.getLogger(__name__)

Expander = Callable[[Dict[str, Any]], List[Dict[str, Any]]]

PLACEHOLDER_VALUE = "__placeholder__"
SKIPPED_KEYS = frozenset({"@id", "@type", "@context"})
BLANK_NODE_PREFIX = "_:"

EMPTY_HINT = LinkHint()


class PropertyResolver:
    """Resolve shorthand property names to IRIs, caching per property name."""

    def __init__(self, context: Any, expand: Expander) -> None:
        self.context = context
        self.expand = expand
        self._cache: Dict[str, str | None] = {}

    def resolve(self, name: str) -> str | None:
        if name in self._cache:
            return self._cache[name]
        iri = self._lookup(name)
        self._cache[name] = iri
        return iri

    def _lookup(self, name: str) -> str | None:
        if self.context is None:
            return None
        try:
            expanded = self.expand({"@context": self.context, name: PLACEHOLDER_VALUE})
        except Exception as exc:
            LOGGER.debug("Property lookup failed for %r: %s", name, exc)
            return None
        if not expanded or not isinstance(expanded[0], dict):
            return None
        for key in expanded[0]:
            if not key.startswith("@"):
                return key
        return None


def _node_ids(values: Iterable[Any]) -> Iterable[str]:
    for value in values:
        if not isinstance(value, dict):
            continue
        if "@list" in value:
            yield from _node_ids(value["@list"])
        elif "@set" in value:
            yield from _node_ids(value["@set"])
        elif "@value" not in value and isinstance(value.get("@id"), str):
            if not value["@id"].startswith(BLANK_NODE_PREFIX):
                yield value["@id"]


def expanded_lookup(expanded: Sequence[Mapping[str, Any]] | None) -> Dict[str, Mapping[str, Any]]:
    """Index expanded nodes by ``@id``, also descending into named graphs."""
    lookup: Dict[str, Mapping[str, Any]] = {}
    for node in expanded or ():
        if not isinstance(node, Mapping):
            continue
        node_id = node.get("@id")
        if isinstance(node_id, str) and node_id not in lookup:
            lookup[node_id] = node
        graph = node.get("@graph")
        if isinstance(graph, list):
            for sub_id, sub_node in expanded_lookup(graph).items():
                lookup.setdefault(sub_id, sub_node)
    return lookup


def resolve_link_hints(
    document: CrateDocument,
    expanded: Sequence[Mapping[str, Any]] | None,
    expand: Expander,
) -> LinkHints:
    """Return ``{entity_id: {property: LinkHint}}`` for every entity property.

    Never raises: a missing context or a failed property lookup yields a hint without a
    property IRI and with no referenced ids.
    """
    resolver = PropertyResolver(document.context, expand)
    nodes = expanded_lookup(expanded)
    hints: LinkHints = {}

    for entity in document.graph:
        if not isinstance(entity, dict):
            continue
        entity_id = entity.get("@id")
        if not isinstance(entity_id, str):
            continue

        entity_hints = hints.setdefault(entity_id, {})
        node = nodes.get(entity_id)
        if node is None and entity_id in ROOT_IDS:
            node = next((nodes[root] for root in ROOT_IDS if root in nodes), None)
        node = node or {}
        for name in entity:
            if name in SKIPPED_KEYS:
                continue
            iri = resolver.resolve(name)
            if iri is None:
                entity_hints[name] = EMPTY_HINT
                continue
            values = node.get(iri, [])
            entity_hints[name] = LinkHint(
                property_iri=iri,
                value_iris=frozenset(_node_ids(values if isinstance(values, list) else [values])),
            )

    return hints


def degraded_link_hints(document: CrateDocument) -> LinkHints:
    """Hints for a document whose expansion failed: nothing is a known reference."""
    hints: LinkHints = {}
    for entity in document.graph:
        if isinstance(entity, dict) and isinstance(entity.get("@id"), str):
            hints.setdefault(entity["@id"], {}).update(
                {name: EMPTY_HINT for name in entity if name not in SKIPPED_KEYS}
            )
    return hints


def reference_targets(hints: LinkHints, entity_id: str, name: str) -> frozenset[str]:
    return hints.get(entity_id, {}).get(name, EMPTY_HINT).value_iris


def is_reference(hints: LinkHints, entity_id: str, name: str, value_id: str) -> bool:
    """True when ``value_id`` shown under ``entity_id``/``name`` is a clickable link."""
    return value_id in reference_targets(hints, entity_id, name)
