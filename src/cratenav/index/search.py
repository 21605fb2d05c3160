"""In-memory fuzzy search over entities of every loaded crate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from thefuzz import fuzz

from cratenav.index.indexer import IndexStats, build_entries
from cratenav.models import Entity, SearchEntry, SearchHit
from cratenav.utils.text import DEFAULT_MAX_DEPTH

LOGGER = logging.getLogger(__name__)

PRIMARY_CRATE_ID = "primary"


@dataclass(slots=True)
class SearchOptions:
    threshold: float = 0.3  # 0.0 = exact match only, 1.0 = match anything
    min_match_chars: int = 2
    max_depth: int = DEFAULT_MAX_DEPTH

    @property
    def cutoff(self) -> float:
        return (1.0 - self.threshold) * 100.0


class SearchIndex:
    """Fuzzy full-text index keyed by ``(entity_id, crate_id)``.

    Every mutation builds a new entry table and swaps it in with a single
    assignment, so a concurrent reader sees either the old or the new index.
    """

    def __init__(self, options: SearchOptions | None = None) -> None:
        self.options = options or SearchOptions()
        self._entries: Tuple[Tuple[SearchEntry, str], ...] = ()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[SearchEntry]:
        return [entry for entry, _ in self._entries]

    @property
    def crate_ids(self) -> List[str]:
        seen: dict[str, None] = {}
        for entry, _ in self._entries:
            seen.setdefault(entry.crate_id, None)
        return list(seen)

    def index(self, entities: Iterable[Entity], crate_id: str = PRIMARY_CRATE_ID) -> IndexStats:
        """Replace all entries stored under ``crate_id`` with fresh ones."""
        stats = IndexStats(crate_ids=[crate_id])
        fresh = build_entries(entities, crate_id, max_depth=self.options.max_depth, stats=stats)
        kept = tuple(item for item in self._entries if item[0].crate_id != crate_id)
        self._entries = kept + tuple((entry, entry.searchable_content.lower()) for entry in fresh)
        LOGGER.info(
            "Indexed crate %s: %d entities (%d skipped, %d empty)",
            crate_id,
            stats.indexed,
            stats.skipped,
            stats.empty,
        )
        return stats

    def clear(self) -> None:
        self._entries = ()

    def _tokens(self, query: str) -> List[str]:
        return [token for token in query.lower().split() if len(token) >= self.options.min_match_chars]

    @staticmethod
    def _score(tokens: List[str], lowered: str) -> float:
        """Average best-substring similarity of each query token, 0-100."""
        return sum(fuzz.partial_ratio(token, lowered) for token in tokens) / len(tokens)

    def search(self, query: str, limit: int = 50) -> List[SearchHit]:
        if not query or not query.strip() or limit <= 0:
            return []

        tokens = self._tokens(query)
        if not tokens:
            return []

        snapshot = self._entries
        cutoff = self.options.cutoff
        scored: List[Tuple[float, int, SearchEntry]] = []
        for position, (entry, lowered) in enumerate(snapshot):
            value = self._score(tokens, lowered)
            if value >= cutoff:
                scored.append((value, position, entry))

        scored.sort(key=lambda item: (-item[0], item[1]))
        return [
            SearchHit(entity_id=entry.entity_id, crate_id=entry.crate_id, score=value)
            for value, _, entry in scored[:limit]
        ]
