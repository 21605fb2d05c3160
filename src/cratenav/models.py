"""Core CrateNav data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

ROOT_IDS = ("./", ".")

Entity = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class LiteralValue:
    """A plain string, number or boolean."""

    value: str | int | float | bool


@dataclass(frozen=True, slots=True)
class Reference:
    """A pointer to another entity by identifier."""

    id: str


@dataclass(frozen=True, slots=True)
class Nested:
    """An inline object that is more than a bare reference."""

    properties: Dict[str, "Value"]


@dataclass(frozen=True, slots=True)
class ListValue:
    items: Tuple["Value", ...]


Value = Union[LiteralValue, Reference, Nested, ListValue]


@dataclass(slots=True)
class CrateDocument:
    """A JSON-LD package: a context plus a flat graph of entities."""

    context: Any
    graph: List[Entity]

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "CrateDocument":
        return cls(context=data.get("@context"), graph=list(data.get("@graph", [])))

    @property
    def root_id(self) -> str | None:
        for entity in self.graph:
            if isinstance(entity, dict) and entity.get("@id") in ROOT_IDS:
                return entity["@id"]
        return None

    @property
    def root(self) -> Entity | None:
        root_id = self.root_id
        if root_id is None:
            return None
        return self.entity_lookup()[root_id]

    def entity_lookup(self) -> Dict[str, Entity]:
        lookup: Dict[str, Entity] = {}
        for entity in self.graph:
            if not isinstance(entity, dict):
                continue
            entity_id = entity.get("@id")
            if isinstance(entity_id, str) and entity_id not in lookup:
                lookup[entity_id] = entity
        return lookup

    def to_json(self) -> Dict[str, Any]:
        return {"@context": self.context, "@graph": self.graph}


class NodeKind(str, Enum):
    DATASET = "Dataset"
    FILE = "File"
    LINK = "Link"
    BROKEN_LINK = "BrokenLink"


@dataclass(slots=True)
class TreeNode:
    """One node of the browsable hierarchy derived from a document."""

    name: str
    id: str
    kind: NodeKind
    children: List["TreeNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "id": self.id,
            "kind": self.kind.value,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True, slots=True)
class LinkHint:
    """Expanded IRI of a property plus the entity ids its values reference."""

    property_iri: str | None = None
    value_iris: frozenset[str] = frozenset()


LinkHints = Dict[str, Dict[str, LinkHint]]


@dataclass(frozen=True, slots=True)
class AlreadyIndexed:
    """Fetch outcome: the package is already available under another locator."""

    alternate_locator: str


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A fully processed package, keyed by its locator."""

    locator: str
    name: str
    document: CrateDocument
    entities: Tuple[Entity, ...]
    tree: TreeNode
    link_hints: LinkHints
    metadata_filename: str | None = None


@dataclass(frozen=True, slots=True)
class Breadcrumb:
    name: str
    locator: str


class NavigationStatus(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True, slots=True)
class NavigationState:
    """Snapshot of where the user is in the package hierarchy."""

    status: NavigationStatus = NavigationStatus.EMPTY
    current_locator: str | None = None
    current_name: str | None = None
    breadcrumbs: Tuple[Breadcrumb, ...] = ()
    root_locator: str | None = None

    @property
    def can_go_back(self) -> bool:
        return bool(self.breadcrumbs)

    @property
    def is_root(self) -> bool:
        return self.current_locator is not None and self.current_locator == self.root_locator

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "current_locator": self.current_locator,
            "current_name": self.current_name,
            "breadcrumbs": [{"name": crumb.name, "locator": crumb.locator} for crumb in self.breadcrumbs],
            "root_locator": self.root_locator,
            "can_go_back": self.can_go_back,
        }


@dataclass(frozen=True, slots=True)
class SearchEntry:
    entity_id: str
    crate_id: str
    searchable_content: str


@dataclass(frozen=True, slots=True)
class SearchHit:
    entity_id: str
    crate_id: str
    score: float = 0.0
