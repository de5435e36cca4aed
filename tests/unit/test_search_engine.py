"""
Unit tests for SearchEngine: ranking, filters, snapshots and analytics hooks.
"""

import pytest
from pydantic import ValidationError

from prayer_search.analytics import AnalyticsRecorder
from prayer_search.engine import SearchEngine, build_contextual_query
from prayer_search.models import Document, SearchContext, SearchOptions

pytestmark = pytest.mark.unit


@pytest.fixture
def recorder():
    return AnalyticsRecorder(store=None, clock=lambda: 1700000000.0, session_id="session_test")


@pytest.fixture
def engine(sample_documents, recorder):
    return SearchEngine(sample_documents, analytics=recorder)


class TestBasicSearch:
    """Behaviour carried over from the original web search tests"""

    def test_search_by_title(self, engine):
        results = engine.search(query="pagi")
        assert len(results) == 1
        assert results[0].document.id == "1"
        assert "title" in results[0].matched_fields
        assert results[0].highlights["title"] == "Doa <mark>Pagi</mark>"

    def test_search_by_category(self, engine):
        results = engine.search(query="harian")
        assert sorted(r.document.id for r in results) == ["1", "3"]

    def test_search_by_tags(self, engine):
        results = engine.search(query="makan")
        assert [r.document.id for r in results] == ["2"]

    def test_search_by_translation(self, engine):
        results = engine.search(query="berkahilah")
        assert [r.document.id for r in results] == ["2"]
        assert "translation" in results[0].matched_fields

    def test_no_match(self, engine):
        assert engine.search(query="xyz-nonexistent") == []

    def test_semantic_expansion(self, engine):
        results = engine.search(query="morning")
        assert [r.document.id for r in results] == ["1"]
        assert results[0].matched_fields == {"semantic"}

    def test_semantic_disabled(self, engine):
        assert engine.search(query="morning", semantic=False) == []

    def test_fuzzy_typo(self, engine):
        results = engine.search(query="sebelun")
        assert [r.document.id for r in results] == ["2"]
        assert "fuzzy" in results[0].matched_fields

    def test_fuzzy_disabled(self, engine):
        assert engine.search(query="sebelun", fuzzy=False) == []


class TestRanking:

    def test_scores_descending(self, engine):
        results = engine.search(query="doa allah harian")
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_deterministic(self, engine):
        first = engine.search(query="doa allah")
        second = engine.search(query="doa allah")
        assert [(r.document.id, r.score) for r in first] == [(r.document.id, r.score) for r in second]

    def test_ties_keep_corpus_order(self, engine):
        assert [r.document.id for r in engine.search(query="doa")] == ["1", "2", "3"]

    def test_limit(self, engine):
        assert len(engine.search(query="doa", limit=1)) == 1

    def test_min_score(self, engine):
        assert engine.search(query="doa", min_score=10.0) == []


class TestFilters:

    def test_category_filter(self, engine):
        results = engine.search(query="doa", categories=["Doa Harian"])
        assert [r.document.id for r in results] == ["1", "3"]

    def test_tag_filter(self, engine):
        results = engine.search(query="doa", tags=["tauhid"])
        assert [r.document.id for r in results] == ["3"]

    def test_empty_query_lists_documents(self, engine):
        results = engine.search(query="", categories=["Doa Harian"])
        assert [r.document.id for r in results] == ["1", "3"]
        assert all(r.score == 1.0 for r in results)


class TestOptions:

    def test_options_object(self, engine):
        results = engine.search(SearchOptions(query="pagi"))
        assert [r.document.id for r in results] == ["1"]

    def test_options_with_overrides(self, engine):
        results = engine.search(SearchOptions(query="doa"), limit=2)
        assert len(results) == 2

    def test_invalid_option_type(self, engine):
        with pytest.raises(ValidationError):
            engine.search(query="doa", limit="many")

    def test_unknown_option(self, engine):
        with pytest.raises(ValidationError):
            engine.search(query="doa", sort="asc")


class TestSnapshots:

    def test_reindex_publishes_new_generation(self, engine):
        before = engine.snapshot.generation
        index = engine.reindex([Document(id="9", title="Doa Bepergian", category="Safar")])
        assert index.generation == before + 1
        assert engine.snapshot is index
        assert [r.document.id for r in engine.search(query="bepergian")] == ["9"]
        assert engine.search(query="pagi") == []

    def test_old_snapshot_unchanged(self, engine):
        old = engine.snapshot
        engine.reindex([])
        results = engine.search(query="pagi", snapshot=old)
        assert [r.document.id for r in results] == ["1"]
        assert engine.search(query="pagi") == []

    def test_empty_corpus(self):
        engine = SearchEngine()
        assert engine.documents == []
        assert engine.search(query="doa") == []

    def test_documents_property(self, engine, sample_documents):
        assert engine.documents == sample_documents


class TestAnalyticsHooks:

    def test_search_recorded_with_count(self, engine, recorder):
        engine.search(query="harian")
        entry = recorder.entries[-1]
        assert entry.query == "harian"
        assert entry.result_count == 2
        assert entry.timestamp == 1700000000000
        assert entry.session_id == "session_test"

    def test_empty_query_not_recorded(self, engine, recorder):
        engine.search(query="")
        assert recorder.entries == []

    def test_record_click(self, engine, recorder):
        engine.search(query="pagi")
        assert engine.record_click("pagi", "1") is True
        assert recorder.entries[-1].clicked_document_id == "1"

    def test_record_click_without_analytics(self, sample_documents):
        assert SearchEngine(sample_documents).record_click("pagi", "1") is False

    def test_suggest(self, engine):
        assert engine.suggest("pag")[0].text in {"pagi", "Doa Pagi"}


class TestContextualQuery:

    def test_all_parts(self):
        context = SearchContext(
            time_of_day="morning",
            occasion="travel",
            mood="grateful",
            recent_actions=["wake up", "wudhu"],
        )
        assert build_contextual_query("doa", context) == "doa morning travel feeling grateful after wake up wudhu"

    def test_empty_context(self):
        assert build_contextual_query("doa", SearchContext()) == "doa"

    def test_invalid_mood(self):
        with pytest.raises(ValidationError):
            SearchContext(mood="angry")


def test_title_match_selects_only_matching_document():
    engine = SearchEngine([
        Document(id="1", title="Doa Pagi", category="Harian"),
        Document(id="2", title="Doa Tidur", category="Harian"),
    ])

    results = engine.search(query="pagi")

    assert [r.document.id for r in results] == ["1"]
    assert "title" in results[0].matched_fields


def test_exact_title_token_scores_direct_plus_fuzzy():
    engine = SearchEngine([Document(id="1", title="Doa Pagi", category="Harian")])

    results = engine.search(query="pagi", semantic=False)

    assert results[0].score == pytest.approx(2.0 + 0.5)
    assert results[0].matched_fields == {"title", "fuzzy"}
