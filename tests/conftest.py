"""Shared fixtures and fakes for CrateNav tests."""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Dict, List

import pytest

from cratenav.errors import ExpansionError, FetchError
from cratenav.loader.fetch import validate_crate_json
from cratenav.models import AlreadyIndexed

SCHEMA_TERMS = {
    "name": "http://schema.org/name",
    "hasPart": "http://schema.org/hasPart",
    "author": "http://schema.org/author",
    "description": "http://schema.org/description",
    "license": "http://schema.org/license",
}

CONTEXT = "https://w3id.org/ro/crate/1.1/context"


def make_crate(*entities: Dict[str, Any], context: Any = CONTEXT) -> Dict[str, Any]:
    return {"@context": context, "@graph": [copy.deepcopy(entity) for entity in entities]}


class FakeExpander:
    """Expands shorthand terms with a fixed term table, like a JSON-LD context would."""

    def __init__(self, terms: Dict[str, str] | None = None, *, fail: bool = False) -> None:
        self.terms = SCHEMA_TERMS if terms is None else terms
        self.fail = fail
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, document: Dict[str, Any]) -> List[Dict[str, Any]]:
        self.calls.append(document)
        if self.fail:
            raise ExpansionError("expansion unavailable")
        nodes = document.get("@graph", [document])
        expanded = []
        for node in nodes:
            out: Dict[str, Any] = {}
            if "@id" in node:
                out["@id"] = node["@id"]
            for key, value in node.items():
                if key.startswith("@") or key not in self.terms:
                    continue
                values = value if isinstance(value, list) else [value]
                out[self.terms[key]] = [
                    {"@id": item["@id"]} if isinstance(item, dict) and "@id" in item else {"@value": item}
                    for item in values
                ]
            if any(not key.startswith("@") for key in out):
                expanded.append(out)
        return expanded

    @property
    def lookup_count(self) -> int:
        return sum(1 for call in self.calls if "@graph" not in call)


class FakeFetcher:
    """In-memory fetcher keyed by locator; values may be crates, errors or redirects."""

    def __init__(self, crates: Dict[str, Any]) -> None:
        self.crates = crates
        self.calls: List[tuple[str, str | None]] = []
        self.gates: Dict[str, asyncio.Event] = {}

    async def fetch(self, locator: str, metadata_filename: str | None = None):
        self.calls.append((locator, metadata_filename))
        if locator in self.gates:
            await self.gates[locator].wait()
        if locator not in self.crates:
            raise FetchError(f"Not found: {locator}", locator=locator)
        value = self.crates[locator]
        if isinstance(value, Exception):
            raise value
        if isinstance(value, AlreadyIndexed):
            return value
        return validate_crate_json(copy.deepcopy(value))

    def fetched(self, locator: str) -> int:
        return sum(1 for called, _ in self.calls if called == locator)


@pytest.fixture
def simple_crate() -> Dict[str, Any]:
    return make_crate(
        {"@id": "ro-crate-metadata.json", "@type": "CreativeWork", "about": {"@id": "./"}},
        {
            "@id": "./",
            "@type": "Dataset",
            "name": "Example crate",
            "hasPart": [{"@id": "data/"}, {"@id": "b.txt"}, {"@id": "a.txt"}],
            "author": {"@id": "#brian"},
        },
        {"@id": "data/", "@type": "Dataset", "hasPart": [{"@id": "data/c.csv"}]},
        {"@id": "data/c.csv", "@type": "File", "name": "Measurements"},
        {"@id": "a.txt", "@type": "File"},
        {"@id": "b.txt", "@type": "File", "description": "Second file"},
        {"@id": "#brian", "@type": "Person", "name": "Brian Smith"},
    )


@pytest.fixture
def expander() -> FakeExpander:
    return FakeExpander()
