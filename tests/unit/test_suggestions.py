"""
Unit tests for autocomplete suggestions.
"""

import pytest

from prayer_search.index import build_index
from prayer_search.suggestions import suggest, suggestion_score

pytestmark = pytest.mark.unit


class TestSuggestionScore:

    def test_prefix(self):
        assert suggestion_score("Doa Pagi", "doa") == 1.0

    def test_substring(self):
        assert suggestion_score("Doa Pagi", "pagi") == 0.8

    def test_fuzzy(self):
        assert suggestion_score("pagi", "pago") == pytest.approx(0.75)


class TestSuggest:

    def test_short_partial(self, sample_index):
        assert suggest(sample_index, "d") == []
        assert suggest(sample_index, " d ") == []

    def test_prefix_matches_ranked_first(self, sample_index):
        suggestions = suggest(sample_index, "pagi")
        assert [(s.text, s.type, s.score) for s in suggestions] == [
            ("pagi", "tag", 1.0),
            ("pagi", "query", 1.0),
            ("Doa Pagi", "prayer", 0.8),
        ]

    def test_source_order_on_ties(self, sample_index):
        suggestions = suggest(sample_index, "doa", limit=5)
        assert [s.type for s in suggestions] == ["prayer", "prayer", "prayer", "category", "category"]
        assert [s.text for s in suggestions[3:]] == ["Doa Harian", "Doa Makan"]

    def test_prayer_metadata(self, sample_index):
        suggestions = suggest(sample_index, "malam")
        prayer = next(s for s in suggestions if s.type == "prayer")
        assert prayer.metadata == {"id": "3", "category": "Doa Harian"}

    def test_deduplicated(self, sample_index):
        suggestions = suggest(sample_index, "harian", limit=10)
        assert [(s.text, s.type) for s in suggestions].count(("harian", "tag")) == 1
        assert [(s.text, s.type) for s in suggestions].count(("Doa Harian", "category")) == 1

    def test_case_insensitive(self, sample_index):
        assert suggest(sample_index, "DOA PAGI")[0].text == "Doa Pagi"

    def test_limit(self, sample_index):
        assert len(suggest(sample_index, "doa", limit=2)) == 2

    def test_situation_keywords(self):
        suggestions = suggest(build_index([]), "sebelum")
        assert [s.text for s in suggestions] == ["sebelum makan", "sebelum tidur"]
        assert all(s.type == "query" for s in suggestions)

    def test_no_match(self, sample_index):
        assert suggest(sample_index, "zzz") == []
