"""Navigation state machine across a root crate and its nested crates."""

from __future__ import annotations

import logging
from typing import List, Sequence

from cratenav.config import AppConfig
from cratenav.errors import ExpansionError, FetchError, NavigationError
from cratenav.graph.links import Expander, degraded_link_hints, resolve_link_hints
from cratenav.graph.tree import build_tree
from cratenav.index.search import SearchIndex, SearchOptions
from cratenav.loader.expand import expand_document
from cratenav.loader.fetch import CrateFetcher
from cratenav.models import (
    AlreadyIndexed,
    Breadcrumb,
    CacheEntry,
    CrateDocument,
    Entity,
    LinkHints,
    NavigationState,
    NavigationStatus,
    SearchHit,
    TreeNode,
)
from cratenav.navigation.cache import CrateCache
from cratenav.utils.locators import (
    base_location,
    display_name_for,
    ensure_trailing_slash,
    is_synthetic,
    resolve_nested_locator,
    split_metadata_filename,
)

LOGGER = logging.getLogger(__name__)


class CrateNavigator:
    """Owns the crate cache, the breadcrumb history and the search index.

    Transitions run ``EMPTY -> LOADING -> READY``. A failed load leaves the
    previously active crate untouched. Each navigation takes a ticket; a
    load that finishes after a newer navigation started is dropped without
    touching the cache or the state.
    """

    def __init__(
        self,
        fetcher: CrateFetcher,
        expander: Expander,
        *,
        search_index: SearchIndex | None = None,
        cache: CrateCache | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.fetcher = fetcher
        self.expander = expander
        if search_index is None:
            search_index = SearchIndex(
                SearchOptions(
                    threshold=self.config.search_threshold,
                    min_match_chars=self.config.min_match_chars,
                    max_depth=self.config.max_flatten_depth,
                )
            )
        self.search_index = search_index
        self.cache = cache if cache is not None else CrateCache()
        self._status = NavigationStatus.EMPTY
        self._current: CacheEntry | None = None
        self._breadcrumbs: List[Breadcrumb] = []
        self._root_locator: str | None = None
        self._ticket = 0

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return NavigationState(
            status=self._status,
            current_locator=self._current.locator if self._current else None,
            current_name=self._current.name if self._current else None,
            breadcrumbs=tuple(self._breadcrumbs),
            root_locator=self._root_locator,
        )

    @property
    def current(self) -> CacheEntry | None:
        return self._current

    @property
    def tree(self) -> TreeNode | None:
        return self._current.tree if self._current else None

    @property
    def entities(self) -> Sequence[Entity]:
        return self._current.entities if self._current else ()

    @property
    def link_hints(self) -> LinkHints:
        return self._current.link_hints if self._current else {}

    @property
    def cached_locators(self) -> List[str]:
        return self.cache.locators

    def entity(self, entity_id: str, locator: str | None = None) -> Entity | None:
        """Look up an entity in the current crate, or in any cached crate."""
        entry = self.cache.get(locator) if locator else self._current
        if entry is None:
            return None
        return entry.document.entity_lookup().get(entity_id)

    def search(self, query: str, limit: int | None = None) -> List[SearchHit]:
        return self.search_index.search(query, limit if limit is not None else self.config.search_limit)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def open_package(
        self,
        locator: str,
        name: str | None = None,
        *,
        is_first_package: bool = False,
        metadata_filename: str | None = None,
    ) -> CacheEntry | None:
        """Make ``locator`` the active crate, loading it unless cached.

        A trailing metadata filename is split off the locator, so a crate
        opened as ``.../ro-crate-metadata.json`` and one reached through a
        relative reference share the same cache key.
        """
        if not is_synthetic(locator):
            base, filename = split_metadata_filename(locator, self.config.metadata_filename)
            if filename:
                locator = ensure_trailing_slash(base)
                metadata_filename = metadata_filename or filename
        return await self._navigate(
            locator, name, metadata_filename=metadata_filename, is_first_package=is_first_package
        )

    async def open_nested_package(self, reference: str, name: str | None = None) -> CacheEntry | None:
        """Open a crate referenced from the current one, remembering the way back."""
        if self._current is None:
            raise NavigationError("Cannot open a nested crate before a crate is loaded")

        current = self._current
        base = None if is_synthetic(current.locator) else base_location(
            current.locator, self.config.metadata_filename
        )
        locator, filename = resolve_nested_locator(
            reference, base, suffix=self.config.metadata_filename
        )
        LOGGER.info("Opening nested crate %s (from %s)", locator, reference)

        crumbs = [*self._breadcrumbs, Breadcrumb(name=current.name, locator=current.locator)]
        return await self._navigate(locator, name, metadata_filename=filename, breadcrumbs=crumbs)

    async def go_to_breadcrumb(self, index: int) -> CacheEntry | None:
        if not 0 <= index < len(self._breadcrumbs):
            raise NavigationError(f"No breadcrumb at position {index}")
        target = self._breadcrumbs[index]
        return await self._navigate(
            target.locator, target.name, breadcrumbs=self._breadcrumbs[:index]
        )

    async def go_back(self) -> CacheEntry | None:
        if not self._breadcrumbs:
            return None
        target = self._breadcrumbs[-1]
        return await self._navigate(
            target.locator, target.name, breadcrumbs=self._breadcrumbs[:-1]
        )

    def reset(self) -> None:
        """Forget everything: cache, history, root crate and search index."""
        self._ticket += 1
        self.cache.clear()
        self.search_index.clear()
        self._breadcrumbs = []
        self._root_locator = None
        self._current = None
        self._status = NavigationStatus.EMPTY
        LOGGER.info("Navigator reset")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _navigate(
        self,
        locator: str,
        name: str | None,
        *,
        metadata_filename: str | None = None,
        is_first_package: bool = False,
        breadcrumbs: List[Breadcrumb] | None = None,
    ) -> CacheEntry | None:
        """Serve or load ``locator`` and commit it if no newer navigation started.

        ``breadcrumbs`` is the history to install on commit; ``None`` keeps the
        current one. Nothing is touched for a navigation that fails or is
        superseded.
        """
        self._ticket += 1
        ticket = self._ticket

        cached = self.cache.get(locator)
        if cached is not None:
            LOGGER.info("Serving crate %s from cache", locator)
            self._commit(cached, is_first_package, breadcrumbs)
            return cached

        self._status = NavigationStatus.LOADING
        try:
            entry = await self._load(locator, name, metadata_filename)
        except Exception:
            if ticket == self._ticket:
                self._settle_status()
            raise

        if ticket != self._ticket:
            LOGGER.debug("Discarding superseded load of %s", locator)
            return None

        self.cache.put(entry)
        self.search_index.index(entry.entities, entry.locator)
        self._commit(entry, is_first_package, breadcrumbs)
        return entry

    def _settle_status(self) -> None:
        self._status = NavigationStatus.READY if self._current is not None else NavigationStatus.EMPTY

    def _commit(
        self,
        entry: CacheEntry,
        is_first_package: bool,
        breadcrumbs: List[Breadcrumb] | None = None,
    ) -> None:
        self._current = entry
        self._status = NavigationStatus.READY
        if breadcrumbs is not None:
            self._breadcrumbs = list(breadcrumbs)
        if is_first_package:
            self._root_locator = entry.locator
        if entry.locator == self._root_locator:
            self._breadcrumbs = []

    async def _load(self, locator: str, name: str | None, metadata_filename: str | None) -> CacheEntry:
        outcome = await self.fetcher.fetch(locator, metadata_filename)
        if isinstance(outcome, AlreadyIndexed):
            LOGGER.info("Crate %s is available as %s", locator, outcome.alternate_locator)
            outcome = await self.fetcher.fetch(outcome.alternate_locator, metadata_filename)
            if isinstance(outcome, AlreadyIndexed):
                raise FetchError(f"Crate {locator} redirects more than once", locator=locator)

        document: CrateDocument = outcome
        root_id = document.root_id
        if root_id is None:
            raise FetchError(f"Fetcher returned a crate without a root entity for {locator}", locator=locator)
        lookup = document.entity_lookup()
        tree = build_tree(root_id, lookup, part_property=self.config.part_property)

        return CacheEntry(
            locator=locator,
            name=name or self._crate_name(document, locator),
            document=document,
            entities=tuple(entity for entity in document.graph if isinstance(entity, dict)),
            tree=tree,
            link_hints=self._link_hints(document, locator),
            metadata_filename=metadata_filename,
        )

    def _link_hints(self, document: CrateDocument, locator: str) -> LinkHints:
        try:
            expanded = expand_document(document.to_json(), self.expander)
        except ExpansionError as exc:
            LOGGER.warning("Link hints unavailable for %s: %s", locator, exc)
            return degraded_link_hints(document)
        return resolve_link_hints(document, expanded, self.expander)

    @staticmethod
    def _crate_name(document: CrateDocument, locator: str) -> str:
        root = document.root
        if root is not None and isinstance(root.get("name"), str) and root["name"].strip():
            return root["name"].strip()
        return display_name_for(locator)
