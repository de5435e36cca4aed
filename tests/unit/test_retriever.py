"""
Unit tests for candidate retrieval, query expansion and result assembly.
"""

import pytest

from prayer_search.index import build_index
from prayer_search.index.keywords import expand_query, suggestion_keywords
from prayer_search.index.retriever import (
    FIELD_WEIGHTS,
    FUZZY_FACTOR,
    SEMANTIC_FACTOR,
    direct_matches,
    fuzzy_matches,
    merge,
    retrieve,
)
from prayer_search.index.scorer import accepts, assemble, browse, highlight
from prayer_search.models import Document

pytestmark = pytest.mark.unit


def doc(doc_id, title, category="Umum", **kwargs):
    return Document(id=doc_id, title=title, category=category, **kwargs)


class TestExpandQuery:

    def test_key_expands_to_synonyms(self):
        assert expand_query("pagi") == ["morning", "fajr", "subuh", "dawn"]

    def test_synonym_expands_back_to_key(self):
        terms = expand_query("morning")
        assert "pagi" in terms
        assert "bangun tidur" in terms

    def test_situation_phrase(self):
        terms = expand_query("doa sebelum makan")
        assert "before eating" in terms
        assert "food blessing" in terms
        assert "eat" in terms  # from "makan"

    def test_whole_word_only(self):
        """'rest' must not fire inside 'interest'"""
        assert "tidur" not in expand_query("interest")

    def test_unique_terms(self):
        terms = expand_query("belajar ilmu")
        assert len(terms) == len(set(terms))

    def test_no_expansion(self):
        assert expand_query("xyz") == []
        assert expand_query("   ") == []

    def test_suggestion_keywords(self):
        keywords = suggestion_keywords()
        assert "doa" in keywords
        assert "sebelum makan" in keywords


class TestDirectMatches:

    def test_field_weights_summed(self):
        index = build_index([doc("1", "Doa Pagi", category="Pagi Hari")])
        candidates = direct_matches(index, ["pagi"])
        assert candidates[0].score == pytest.approx(FIELD_WEIGHTS["title"] + FIELD_WEIGHTS["category"])
        assert candidates[0].matched_fields == {"title", "category"}

    def test_multiple_tokens_accumulate(self):
        index = build_index([doc("1", "Doa Pagi")])
        candidates = direct_matches(index, ["doa", "pagi"])
        assert candidates[0].score == pytest.approx(2 * FIELD_WEIGHTS["title"])


class TestSemanticMatches:

    def test_expansion_scored_at_semantic_factor(self):
        index = build_index([doc("1", "Doa Pagi")])
        candidates = retrieve(index, "morning", fuzzy=False)
        assert candidates[0].score == pytest.approx(SEMANTIC_FACTOR * FIELD_WEIGHTS["title"])
        assert candidates[0].matched_fields == {"semantic"}

    def test_disabled(self):
        index = build_index([doc("1", "Doa Pagi")])
        assert retrieve(index, "morning", fuzzy=False, semantic=False) == {}

    def test_query_tokens_not_double_counted(self):
        """"morning" expands back to "pagi", which the direct strategy already scores"""
        index = build_index([doc("1", "Doa Pagi")])
        candidates = retrieve(index, "pagi morning", fuzzy=False)
        assert candidates[0].score == pytest.approx(FIELD_WEIGHTS["title"])
        assert candidates[0].matched_fields == {"title"}


class TestFuzzyMatches:

    def test_above_threshold(self):
        index = build_index([doc("1", "abcdefg")])
        candidates = fuzzy_matches(index, ["abcdexy"])
        assert candidates[0].score == pytest.approx(FUZZY_FACTOR * (1 - 2 / 7))
        assert candidates[0].matched_fields == {"fuzzy"}

    def test_below_threshold(self):
        index = build_index([doc("1", "abcdefghijklm")])
        assert fuzzy_matches(index, ["abcdefghiwxyz"]) == {}

    def test_exact_match_scores_full_similarity(self):
        index = build_index([doc("1", "Pagi")])
        candidates = fuzzy_matches(index, ["pagi"])
        assert candidates[0].score == pytest.approx(FUZZY_FACTOR)
        assert candidates[0].matched_fields == {"fuzzy"}

    def test_exact_match_adds_to_direct_score(self):
        index = build_index([doc("1", "Doa Pagi", category="Harian")])
        candidates = retrieve(index, "pagi", semantic=False)
        assert candidates[0].score == pytest.approx(FIELD_WEIGHTS["title"] + FUZZY_FACTOR)
        assert candidates[0].matched_fields == {"title", "fuzzy"}

    def test_one_edit_on_seven_characters_passes(self):
        index = build_index([doc("1", "sebelum")])
        candidates = fuzzy_matches(index, ["sebelun"])
        assert candidates[0].score == pytest.approx(FUZZY_FACTOR * (1 - 1 / 7))

    def test_arabic_tokens(self):
        index = build_index([doc("1", "Doa", arabic_text="بِسْمِ اللَّهِ")])
        candidates = fuzzy_matches(index, ["اللَّه"])
        assert 0 in candidates

    def test_short_query_tokens_skipped(self):
        index = build_index([doc("1", "Doa")])
        assert fuzzy_matches(index, ["do"]) == {}

    def test_typo_finds_document(self):
        index = build_index([doc("1", "Doa Perlindungan")])
        candidates = retrieve(index, "perlindugan")
        assert 0 in candidates
        assert "fuzzy" in candidates[0].matched_fields


class TestRetrieve:

    def test_merge_is_additive(self):
        index = build_index([doc("1", "Doa Pagi")])
        direct = direct_matches(index, ["pagi"])
        merged = merge(direct, direct)
        assert merged[0].score == pytest.approx(2 * direct[0].score)

    def test_strategies_union_fields(self):
        index = build_index([doc("1", "Doa Pagi", translation="morning remembrance")])
        candidates = retrieve(index, "pagi")
        assert {"title", "semantic"} <= candidates[0].matched_fields

    def test_empty_query(self, sample_index):
        assert retrieve(sample_index, "") == {}
        assert retrieve(sample_index, "  ,  ") == {}

    def test_empty_index(self):
        assert retrieve(build_index([]), "doa") == {}


class TestAssemble:

    def test_sorted_descending_with_stable_ties(self, sample_index):
        results = assemble(sample_index, retrieve(sample_index, "doa"), ["doa"])
        assert [r.document.id for r in results] == ["1", "2", "3"]

    def test_min_score(self, sample_index):
        candidates = retrieve(sample_index, "pagi")
        assert assemble(sample_index, candidates, ["pagi"], min_score=100) == []

    def test_limit(self, sample_index):
        results = assemble(sample_index, retrieve(sample_index, "doa"), ["doa"], limit=2)
        assert len(results) == 2

    def test_category_filter(self, sample_index):
        results = assemble(sample_index, retrieve(sample_index, "doa"), ["doa"], categories=["Doa Harian"])
        assert [r.document.id for r in results] == ["1", "3"]

    def test_tag_filter(self, sample_index):
        results = assemble(sample_index, retrieve(sample_index, "doa"), ["doa"], tags=["berkah", "x"])
        assert [r.document.id for r in results] == ["2"]


class TestHighlight:

    def test_marks_title_and_translation(self):
        document = doc("1", "Doa Pagi", translation="Doa di waktu pagi")
        highlights = highlight(document, ["pagi"])
        assert highlights["title"] == "Doa <mark>Pagi</mark>"
        assert highlights["translation"] == "Doa di waktu <mark>pagi</mark>"

    def test_word_boundaries(self):
        highlights = highlight(doc("1", "Berdoa dan Doa"), ["doa"])
        assert highlights["title"] == "Berdoa dan <mark>Doa</mark>"

    def test_no_tokens(self):
        assert highlight(doc("1", "Doa"), []) == {}

    def test_empty_translation_omitted(self):
        assert "translation" not in highlight(doc("1", "Doa"), ["doa"])


class TestBrowse:

    def test_lists_in_corpus_order(self, sample_index):
        results = browse(sample_index, limit=2)
        assert [r.document.id for r in results] == ["1", "2"]
        assert all(r.score == 1.0 for r in results)

    def test_filters(self, sample_index):
        results = browse(sample_index, categories=["Doa Makan"])
        assert [r.document.id for r in results] == ["2"]


def test_accepts():
    document = doc("1", "Doa", category="Harian", tags=frozenset({"pagi"}))
    assert accepts(document, None, None)
    assert accepts(document, ["Harian"], ["pagi", "malam"])
    assert not accepts(document, ["Makan"], None)
    assert not accepts(document, None, ["malam"])
