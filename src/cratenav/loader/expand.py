"""JSON-LD expansion backed by rdflib, with remote contexts fetched via httpx.

The document is parsed into an RDF graph and serialised back as JSON-LD
without a context, which yields the expanded node form: full property IRIs
and values wrapped as ``{"@value": ...}`` or ``{"@id": ...}``. Relative
identifiers are resolved against a private base and turned back into their
relative form afterwards, so expanded ``@id`` values match the crate's own.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Callable, Dict, List

import httpx
from rdflib import Graph

from cratenav.errors import ExpansionError

LOGGER = logging.getLogger(__name__)

Expander = Callable[[Dict[str, Any]], List[Dict[str, Any]]]

EXPANSION_BASE = "http://cratenav.invalid/crate/"


class CachingContextLoader:
    """Download each remote JSON-LD context once and inline it.

    Link-hint derivation expands one single-key document per property name,
    all sharing the crate's context, so caching here avoids a request per property.
    """

    def __init__(self, *, timeout: float = 30.0, client: httpx.Client | None = None) -> None:
        self.timeout = timeout
        self.client = client
        self._contexts: Dict[str, Any] = {}

    def resolve(self, context: Any) -> Any:
        """Replace every remote context URL inside ``context`` with its content."""
        if isinstance(context, str):
            if context not in self._contexts:
                self._contexts[context] = self._download(context)
            return copy.deepcopy(self._contexts[context])
        if isinstance(context, list):
            return [self.resolve(item) for item in context]
        return context

    def _download(self, url: str) -> Any:
        LOGGER.debug("Downloading JSON-LD context %s", url)
        headers = {"Accept": "application/ld+json, application/json"}
        if self.client is not None:
            response = self.client.get(url, headers=headers)
        else:
            with httpx.Client(follow_redirects=True, timeout=self.timeout) as client:
                response = client.get(url, headers=headers)
        response.raise_for_status()
        payload = response.json()
        if isinstance(payload, dict) and "@context" in payload:
            return payload["@context"]
        return payload


def _relativize(value: Any) -> Any:
    if isinstance(value, list):
        return [_relativize(item) for item in value]
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if key == "@id" and isinstance(item, str) and item.startswith(EXPANSION_BASE):
                item = item[len(EXPANSION_BASE):] or "./"
            result[key] = _relativize(item)
        return result
    return value


class JsonLdExpander:
    """Callable ``expand(document) -> list[node]`` raising :class:`ExpansionError`."""

    def __init__(self, loader: CachingContextLoader | None = None) -> None:
        self.loader = loader or CachingContextLoader()

    def __call__(self, document: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            prepared = dict(document)
            if "@context" in prepared:
                prepared["@context"] = self.loader.resolve(prepared["@context"])
            graph = Graph()
            graph.parse(data=json.dumps(prepared), format="json-ld", base=EXPANSION_BASE)
            output = json.loads(graph.serialize(format="json-ld"))
        except Exception as exc:
            raise ExpansionError(f"JSON-LD expansion failed: {exc}") from exc

        if isinstance(output, dict):
            output = output.get("@graph", [output])
        return _relativize(output)


def expand_document(document: Dict[str, Any], expand: Expander) -> List[Dict[str, Any]]:
    """Run ``expand`` and normalise any failure to :class:`ExpansionError`."""
    try:
        return expand(document)
    except ExpansionError:
        raise
    except Exception as exc:
        raise ExpansionError(f"JSON-LD expansion failed: {exc}") from exc


def offline_expander(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Expander for offline use: link hints degrade to "no references known"."""
    raise ExpansionError("JSON-LD expansion is disabled in offline mode")
