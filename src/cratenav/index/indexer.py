"""Entity indexing pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from cratenav.models import Entity, SearchEntry
from cratenav.utils.text import DEFAULT_MAX_DEPTH, extract_searchable_content

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexStats:
    indexed: int = 0
    skipped: int = 0
    empty: int = 0
    crate_ids: list[str] = field(default_factory=list)

    def increment(self, status: str) -> None:
        if status == "indexed":
            self.indexed += 1
        elif status == "empty":
            self.empty += 1
        else:
            self.skipped += 1


def build_entries(
    entities: Iterable[Entity],
    crate_id: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    stats: IndexStats | None = None,
) -> List[SearchEntry]:
    """Derive one search entry per identifiable, non-empty entity."""
    entries: List[SearchEntry] = []
    for entity in entities:
        entity_id = entity.get("@id") if isinstance(entity, dict) else None
        if not entity_id or not isinstance(entity_id, str):
            if stats is not None:
                stats.increment("skipped")
            continue

        content = extract_searchable_content(entity, max_depth=max_depth)
        if not content:
            if stats is not None:
                stats.increment("empty")
            continue

        entries.append(SearchEntry(entity_id=entity_id, crate_id=crate_id, searchable_content=content))
        if stats is not None:
            stats.increment("indexed")

    LOGGER.debug("Built %d search entries for crate %s", len(entries), crate_id)
    return entries
