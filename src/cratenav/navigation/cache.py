"""Process-lifetime cache of fully processed crates."""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List

from cratenav.models import CacheEntry

LOGGER = logging.getLogger(__name__)


class CrateCache:
    """Cache entries keyed by locator. Entries are replaced, never mutated."""

    def __init__(self) -> None:
        self._entries: Dict[str, CacheEntry] = {}

    def __contains__(self, locator: object) -> bool:
        return locator in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    @property
    def locators(self) -> List[str]:
        return list(self._entries)

    def get(self, locator: str) -> CacheEntry | None:
        return self._entries.get(locator)

    def put(self, entry: CacheEntry) -> None:
        if entry.locator in self._entries:
            LOGGER.debug("Replacing cached crate %s", entry.locator)
        self._entries[entry.locator] = entry

    def clear(self) -> None:
        self._entries = {}
