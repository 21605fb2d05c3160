"""Build the browsable hierarchy of a crate from its part-of relationships."""

from __future__ import annotations

from typing import Iterable, List, Mapping

from cratenav.graph.values import as_list, reference_id, type_names
from cratenav.models import Entity, NodeKind, TreeNode

PART_PROPERTY = "hasPart"

_KIND_ORDER = {
    NodeKind.DATASET: 0,
    NodeKind.FILE: 1,
    NodeKind.LINK: 2,
    NodeKind.BROKEN_LINK: 3,
}


def entity_lookup(entities: Iterable[Entity]) -> dict[str, Entity]:
    """Index entities by ``@id``; the first occurrence of an id wins."""
    lookup: dict[str, Entity] = {}
    for entity in entities:
        if not isinstance(entity, dict):
            continue
        entity_id = entity.get("@id")
        if isinstance(entity_id, str) and entity_id not in lookup:
            lookup[entity_id] = entity
    return lookup


def display_name(entity_id: str, entity: Entity | None = None) -> str:
    """Explicit ``name``, else the last path segment of the id, else the id."""
    if entity is not None:
        for candidate in as_list(entity.get("name")):
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
    segments = [segment for segment in entity_id.split("/") if segment and segment != "."]
    if segments:
        return segments[-1]
    return entity_id


def part_ids(entity: Entity, part_property: str = PART_PROPERTY) -> List[str]:
    ids = (reference_id(item) for item in as_list(entity.get(part_property)))
    return [item for item in ids if item]


def _kind_of(entity: Entity, part_property: str) -> NodeKind:
    if "Dataset" in type_names(entity) or part_ids(entity, part_property):
        return NodeKind.DATASET
    return NodeKind.FILE


def _sort_key(node: TreeNode) -> tuple[int, str, str]:
    return (_KIND_ORDER[node.kind], node.name.casefold(), node.id)


def build_tree(
    root_id: str,
    lookup: Mapping[str, Entity],
    *,
    part_property: str = PART_PROPERTY,
) -> TreeNode:
    """Walk ``part_property`` links depth first from ``root_id``.

    The visited set is local to the current path: an id seen again on the same
    path becomes a terminal ``Link`` node, while the same entity can still
    appear under unrelated branches. Parts missing from ``lookup`` become
    ``BrokenLink`` leaves.
    """
    root = lookup.get(root_id)
    if root is None:
        return TreeNode(name=display_name(root_id), id=root_id, kind=NodeKind.BROKEN_LINK)

    node = _build_node(root_id, root, lookup, frozenset({root_id}), part_property)
    node.kind = NodeKind.DATASET
    return node


def _build_node(
    entity_id: str,
    entity: Entity,
    lookup: Mapping[str, Entity],
    path: frozenset[str],
    part_property: str,
) -> TreeNode:
    children: List[TreeNode] = []
    for child_id in part_ids(entity, part_property):
        child = lookup.get(child_id)
        if child_id in path:
            children.append(TreeNode(name=display_name(child_id, child), id=child_id, kind=NodeKind.LINK))
        elif child is None:
            children.append(TreeNode(name=display_name(child_id), id=child_id, kind=NodeKind.BROKEN_LINK))
        else:
            children.append(_build_node(child_id, child, lookup, path | {child_id}, part_property))

    children.sort(key=_sort_key)
    return TreeNode(
        name=display_name(entity_id, entity),
        id=entity_id,
        kind=_kind_of(entity, part_property),
        children=children,
    )


def find_path(node: TreeNode, entity_id: str) -> List[str] | None:
    """Return the ids from the root down to the first node with ``entity_id``."""
    if node.id == entity_id:
        return [node.id]
    for child in node.children:
        found = find_path(child, entity_id)
        if found is not None:
            return [node.id, *found]
    return None
