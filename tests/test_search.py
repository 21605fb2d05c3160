"""Tests for the fuzzy search index."""

from __future__ import annotations

import pytest

from cratenav.index.search import SearchIndex, SearchOptions
from cratenav.models import SearchHit


@pytest.fixture
def people() -> list[dict]:
    return [
        {"@id": "#brian", "@type": "Person", "name": "Brian Smith"},
        {"@id": "#alice", "@type": "Person", "name": "Alice Jones"},
        {"@id": "data.csv", "@type": "File", "encodingFormat": "text/csv"},
    ]


class TestSearchOptions:
    """Test SearchOptions dataclass."""

    def test_cutoff(self) -> None:
        """Threshold maps to a 0-100 score cutoff."""
        assert SearchOptions(threshold=0.3).cutoff == pytest.approx(70.0)
        assert SearchOptions(threshold=0.0).cutoff == pytest.approx(100.0)


class TestSearchIndex:
    """Test SearchIndex class."""

    def test_typo_tolerant_match(self, people: list[dict]) -> None:
        """Should find an entity by name, tolerating a case difference."""
        index = SearchIndex()
        index.index(people, "p1")

        results = index.search("brian", 10)

        assert results[0].entity_id == "#brian"
        assert results[0].crate_id == "p1"

    def test_misspelling(self, people: list[dict]) -> None:
        """Should still match with a transposed letter."""
        index = SearchIndex()
        index.index(people, "p1")

        ids = [hit.entity_id for hit in index.search("brain", 10)]

        assert "#brian" in ids

    def test_no_plausible_match(self, people: list[dict]) -> None:
        """Should return nothing for gibberish."""
        index = SearchIndex()
        index.index(people, "p1")

        assert index.search("zzzzqqqq", 10) == []

    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    def test_empty_query(self, people: list[dict], query: str) -> None:
        """Empty or whitespace-only queries return nothing."""
        index = SearchIndex()
        index.index(people, "p1")

        assert index.search(query, 10) == []

    def test_short_tokens_ignored(self, people: list[dict]) -> None:
        """Tokens below the minimum length are not matched on."""
        index = SearchIndex(SearchOptions(min_match_chars=3))
        index.index(people, "p1")

        assert index.search("al", 10) == []

    def test_property_names_searchable(self, people: list[dict]) -> None:
        """Property names are part of the searchable content."""
        index = SearchIndex()
        index.index(people, "p1")

        ids = [hit.entity_id for hit in index.search("encodingFormat", 10)]

        assert ids == ["data.csv"]

    def test_limit(self) -> None:
        """Should truncate to the limit, best first."""
        index = SearchIndex()
        index.index([{"@id": f"#e{i}", "name": "sample"} for i in range(5)], "p1")

        results = index.search("sample", 2)

        assert len(results) == 2
        assert [hit.entity_id for hit in results] == ["#e0", "#e1"]

    def test_sorted_by_score(self) -> None:
        """Better matches rank first."""
        index = SearchIndex(SearchOptions(threshold=0.6))
        index.index([{"@id": "#near", "name": "Brain"}, {"@id": "#exact", "name": "Brian"}], "p1")

        results = index.search("brian", 10)

        assert results[0].entity_id == "#exact"
        assert results[0].score >= results[-1].score

    def test_reindex_replaces_crate_entries(self, people: list[dict]) -> None:
        """Re-indexing a crate drops its stale entries but keeps other crates."""
        index = SearchIndex()
        index.index(people, "A")
        index.index([{"@id": "#other", "name": "Other Person"}], "B")

        index.index([{"@id": "#carol", "name": "Carol White"}], "A")

        a_ids = {entry.entity_id for entry in index.entries if entry.crate_id == "A"}
        b_ids = {entry.entity_id for entry in index.entries if entry.crate_id == "B"}
        assert a_ids == {"#carol"}
        assert b_ids == {"#other"}
        assert index.search("brian", 10) == []

    def test_same_id_in_two_crates(self) -> None:
        """Identical ids in different crates do not collide."""
        index = SearchIndex()
        index.index([{"@id": "./", "name": "Root One"}], "A")
        index.index([{"@id": "./", "name": "Root Two"}], "B")

        results = index.search("root", 10)

        assert {(hit.entity_id, hit.crate_id) for hit in results} == {("./", "A"), ("./", "B")}

    def test_skips_entities_without_id(self) -> None:
        """Entities lacking an @id are not indexed."""
        index = SearchIndex()

        stats = index.index([{"name": "Anonymous"}, {"@id": "#x", "name": "Named"}], "A")

        assert len(index) == 1
        assert stats.indexed == 1
        assert stats.skipped == 1

    def test_zero_entities_is_valid(self) -> None:
        """Indexing nothing is a silent, valid outcome."""
        index = SearchIndex()

        stats = index.index([], "A")

        assert len(index) == 0
        assert stats.indexed == 0
        assert index.search("anything", 10) == []

    def test_clear(self, people: list[dict]) -> None:
        """Should drop every crate."""
        index = SearchIndex()
        index.index(people, "A")
        index.index(people, "B")

        index.clear()

        assert len(index) == 0
        assert index.crate_ids == []
        assert index.search("Alice", 10) == []

    def test_hit_shape(self, people: list[dict]) -> None:
        """Results carry entity id, crate id and score."""
        index = SearchIndex()
        index.index(people, "p1")

        hit = index.search("Alice", 1)[0]

        assert isinstance(hit, SearchHit)
        assert (hit.entity_id, hit.crate_id) == ("#alice", "p1")
        assert hit.score == pytest.approx(100.0)
