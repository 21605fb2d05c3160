"""Tests for link hint resolution."""

from __future__ import annotations

from cratenav.graph.links import (
    EMPTY_HINT,
    PropertyResolver,
    degraded_link_hints,
    expanded_lookup,
    is_reference,
    reference_targets,
    resolve_link_hints,
)
from cratenav.models import CrateDocument, LinkHint

from conftest import CONTEXT, FakeExpander, make_crate

SCHEMA = "http://schema.org/"


class TestPropertyResolver:
    """Test PropertyResolver class."""

    def test_resolves_known_term(self, expander: FakeExpander) -> None:
        """Known shorthand names resolve to their IRI."""
        resolver = PropertyResolver(CONTEXT, expander)

        assert resolver.resolve("author") == SCHEMA + "author"

    def test_unknown_term(self, expander: FakeExpander) -> None:
        """Terms the context does not define resolve to None."""
        resolver = PropertyResolver(CONTEXT, expander)

        assert resolver.resolve("mystery") is None

    def test_caches_per_property(self, expander: FakeExpander) -> None:
        """Each property name is looked up once."""
        resolver = PropertyResolver(CONTEXT, expander)

        for _ in range(3):
            resolver.resolve("author")
            resolver.resolve("mystery")

        assert expander.lookup_count == 2

    def test_no_context(self, expander: FakeExpander) -> None:
        """Without a context nothing is looked up."""
        resolver = PropertyResolver(None, expander)

        assert resolver.resolve("author") is None
        assert expander.calls == []

    def test_lookup_failure(self) -> None:
        """A failing expansion degrades to None instead of raising."""
        resolver = PropertyResolver(CONTEXT, FakeExpander(fail=True))

        assert resolver.resolve("author") is None


class TestResolveLinkHints:
    """Test resolve_link_hints function."""

    def test_references_and_literals(self, simple_crate: dict, expander: FakeExpander) -> None:
        """Node-object values are references; literal values are not."""
        document = CrateDocument.from_json(simple_crate)
        expanded = expander(document.to_json())

        hints = resolve_link_hints(document, expanded, expander)

        root = hints["./"]
        assert root["author"] == LinkHint(SCHEMA + "author", frozenset({"#brian"}))
        assert root["hasPart"].value_iris == frozenset({"data/", "a.txt", "b.txt"})
        assert root["name"] == LinkHint(SCHEMA + "name", frozenset())
        assert "@id" not in root and "@type" not in root

    def test_unresolvable_property(self, simple_crate: dict, expander: FakeExpander) -> None:
        """Properties the context cannot expand get an empty hint."""
        document = CrateDocument.from_json(simple_crate)

        hints = resolve_link_hints(document, expander(document.to_json()), expander)

        assert hints["ro-crate-metadata.json"]["about"] is EMPTY_HINT

    def test_one_lookup_per_property_name(self, simple_crate: dict, expander: FakeExpander) -> None:
        """Lookups are shared across entities within one document."""
        document = CrateDocument.from_json(simple_crate)

        resolve_link_hints(document, [], expander)

        # about, name, hasPart, author, description
        assert expander.lookup_count == 5

    def test_no_context(self, expander: FakeExpander) -> None:
        """A crate without a context gets hints with no IRI and no references."""
        document = CrateDocument.from_json(
            make_crate({"@id": "./", "author": {"@id": "#p"}}, context=None)
        )

        hints = resolve_link_hints(document, None, expander)

        assert hints == {"./": {"author": EMPTY_HINT}}

    def test_blank_nodes_filtered(self, expander: FakeExpander) -> None:
        """Blank node identifiers never count as references."""
        document = CrateDocument.from_json(make_crate({"@id": "./", "author": [{"@id": "#p"}, {"name": "x"}]}))
        expanded = [{"@id": "./", SCHEMA + "author": [{"@id": "#p"}, {"@id": "_:b0"}]}]

        hints = resolve_link_hints(document, expanded, expander)

        assert hints["./"]["author"].value_iris == frozenset({"#p"})

    def test_list_values(self, expander: FakeExpander) -> None:
        """References inside @list containers are collected."""
        document = CrateDocument.from_json(make_crate({"@id": "./", "author": [{"@id": "#a"}]}))
        expanded = [{"@id": "./", SCHEMA + "author": [{"@list": [{"@id": "#a"}, {"@value": "x"}]}]}]

        hints = resolve_link_hints(document, expanded, expander)

        assert hints["./"]["author"].value_iris == frozenset({"#a"})

    def test_root_alias(self, expander: FakeExpander) -> None:
        """A root written as "." matches an expanded root written as "./"."""
        document = CrateDocument.from_json(make_crate({"@id": ".", "author": {"@id": "#p"}}))
        expanded = [{"@id": "./", SCHEMA + "author": [{"@id": "#p"}]}]

        hints = resolve_link_hints(document, expanded, expander)

        assert is_reference(hints, ".", "author", "#p")

    def test_failed_lookups_never_raise(self, simple_crate: dict) -> None:
        """Lookup failures leave every hint empty."""
        document = CrateDocument.from_json(simple_crate)

        hints = resolve_link_hints(document, None, FakeExpander(fail=True))

        assert all(hint is EMPTY_HINT for entity in hints.values() for hint in entity.values())


class TestHelpers:
    """Test link hint helpers."""

    def test_degraded_hints(self, simple_crate: dict) -> None:
        """Every property is present and nothing is a reference."""
        hints = degraded_link_hints(CrateDocument.from_json(simple_crate))

        assert set(hints["./"]) == {"name", "hasPart", "author"}
        assert not is_reference(hints, "./", "author", "#brian")

    def test_reference_targets_unknown(self) -> None:
        """Unknown entities or properties have no targets."""
        assert reference_targets({}, "x", "y") == frozenset()

    def test_expanded_lookup_named_graph(self) -> None:
        """Nodes inside a named graph are indexed too."""
        lookup = expanded_lookup([{"@id": "g", "@graph": [{"@id": "a"}, "junk"]}, {"@id": "a", "x": 1}])

        assert set(lookup) == {"g", "a"}
        assert lookup["a"] == {"@id": "a"}
