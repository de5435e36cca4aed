"""
Prayer Search - hybrid retrieval and AI-assisted ranking for a prayer corpus.

Usage:
    from prayer_search import SearchEngine, AISearchEngine, load_corpus

    engine = SearchEngine(load_corpus("data/prayers.json"))
    results = engine.search(query="doa pagi", limit=10)
"""

from .corpus import load_corpus, parse_documents
from .engine import AISearchEngine, SearchEngine
from .models import (
    AISearchResult,
    Document,
    SearchContext,
    SearchOptions,
    SearchResult,
    SemanticSearchOptions,
)

__all__ = [
    "load_corpus",
    "parse_documents",
    "AISearchEngine",
    "SearchEngine",
    "AISearchResult",
    "Document",
    "SearchContext",
    "SearchOptions",
    "SearchResult",
    "SemanticSearchOptions",
]
