"""
Search engines.

SearchEngine owns the current index snapshot and runs the synchronous
retrieval pipeline (retrieve -> assemble). AISearchEngine layers the
optional AI reranking stage on top; its async methods run the synchronous
retrieval in a worker thread so the event loop stays free.

Snapshot model: an InvertedIndex is never mutated. reindex() builds a new
one and publishes it by swapping a single reference; every search reads the
reference once and works on that snapshot until it returns, so a concurrent
reindex cannot change results mid-query.
"""

import asyncio
import logging
import threading
from typing import Iterable, List, Optional

from .analytics import AnalyticsRecorder
from .index.index_builder import InvertedIndex, build_index
from .index.retriever import retrieve
from .index.scorer import assemble, browse
from .index.tokenizer import tokenize_query
from .models import (
    AISearchResult,
    Document,
    SearchContext,
    SearchOptions,
    SearchResult,
    SemanticSearchOptions,
)
from .reranking.reranker import AIReranker
from .suggestions import Suggestion, suggest

logger = logging.getLogger(__name__)

BASIC_CONFIDENCE = 0.7
BASIC_REASON = "Basic search match"


class SearchEngine:
    """
    Keyword, semantic and fuzzy search over one corpus.

    Args:
        documents: Initial corpus (indexed immediately)
        analytics: Optional query log; non-empty searches are recorded
    """

    def __init__(
        self,
        documents: Optional[Iterable[Document]] = None,
        analytics: Optional[AnalyticsRecorder] = None,
    ):
        self.analytics = analytics
        self._write_lock = threading.Lock()
        self._generation = 0
        self._snapshot: InvertedIndex = build_index((), generation=0)
        self.reindex(documents or ())

    @property
    def snapshot(self) -> InvertedIndex:
        return self._snapshot

    @property
    def documents(self) -> List[Document]:
        return list(self._snapshot.documents)

    def reindex(self, documents: Iterable[Document]) -> InvertedIndex:
        """
        Replace the corpus: build a fresh index and publish it.

        Returns:
            The newly published snapshot
        """
        with self._write_lock:
            generation = self._generation + 1
            index = build_index(documents, generation=generation)
            self._snapshot = index
            self._generation = generation

        logger.info(
            f"Published index generation {index.generation}: "
            f"{len(index)} documents, {len(index.postings)} tokens"
        )
        return index

    def search(
        self,
        options: Optional[SearchOptions] = None,
        snapshot: Optional[InvertedIndex] = None,
        **kwargs,
    ) -> List[SearchResult]:
        """
        Run a search.

        Args:
            options: SearchOptions (or pass the same fields as keyword arguments)
            snapshot: Index to search instead of the published one

        Returns:
            Results sorted by score descending (possibly empty)

        Raises:
            pydantic.ValidationError: invalid option types

        Example:
            >>> engine.search(query="pagi", categories=["Harian"])
        """
        if options is None:
            options = SearchOptions(**kwargs)
        elif kwargs:
            options = SearchOptions(**{**options.model_dump(), **kwargs})

        index = snapshot if snapshot is not None else self._snapshot

        if not options.query.strip():
            return browse(index, options.categories, options.tags, options.limit)

        candidates = retrieve(index, options.query, fuzzy=options.fuzzy, semantic=options.semantic)
        results = assemble(
            index,
            candidates,
            tokenize_query(options.query),
            categories=options.categories,
            tags=options.tags,
            min_score=options.min_score,
            limit=options.limit,
        )

        if self.analytics is not None:
            self.analytics.record_search(options.query, len(results))

        logger.debug(
            f"Search '{options.query}' gen={index.generation}: "
            f"{len(candidates)} candidates, {len(results)} results"
        )
        return results

    def suggest(self, partial_query: str, limit: int = 5) -> List[Suggestion]:
        return suggest(self._snapshot, partial_query, limit)

    def record_click(self, query: str, document_id: str) -> bool:
        if self.analytics is None:
            return False
        return self.analytics.record_click(query, document_id)


def build_contextual_query(query: str, context: SearchContext) -> str:
    """
    Append situational hints to a query.

    Example:
        >>> build_contextual_query("doa", SearchContext(time_of_day="morning", mood="grateful"))
        'doa morning feeling grateful'
    """
    parts = [query]
    if context.time_of_day:
        parts.append(context.time_of_day)
    if context.occasion:
        parts.append(context.occasion)
    if context.mood:
        parts.append(f"feeling {context.mood}")
    if context.recent_actions:
        parts.append(f"after {' '.join(context.recent_actions)}")
    return " ".join(parts)


class AISearchEngine:
    """
    Search with optional AI reranking.

    Args:
        search_engine: Retrieval engine providing candidates
        reranker: AI stage; None behaves like use_ai=False
    """

    def __init__(self, search_engine: SearchEngine, reranker: Optional[AIReranker] = None):
        self.search_engine = search_engine
        self.reranker = reranker

    def _candidates(self, options: SemanticSearchOptions) -> List[SearchResult]:
        snapshot = build_index(options.items) if options.items is not None else None
        return self.search_engine.search(
            SearchOptions(query=options.query, limit=options.limit * 2),
            snapshot=snapshot,
        )

    async def semantic_search(
        self,
        options: Optional[SemanticSearchOptions] = None,
        **kwargs,
    ) -> List[AISearchResult]:
        """
        Retrieve candidates (limit x 2) and enhance them with AI judgments.

        `items` searches a private index built for this call only; the
        engine's published corpus is left untouched.

        Raises:
            pydantic.ValidationError: invalid option types (nothing else)
        """
        if options is None:
            options = SemanticSearchOptions(**kwargs)
        elif kwargs:
            options = SemanticSearchOptions(**{**dict(options), **kwargs})

        initial = await asyncio.to_thread(self._candidates, options)
        if not initial:
            return []

        use_ai = options.use_ai and bool(options.query.strip())
        if use_ai and self.reranker is None:
            logger.warning("AI search requested but no completion provider configured. Using basic results.")
            use_ai = False

        if not use_ai:
            return [
                AISearchResult.from_result(
                    result,
                    ai_score=result.score,
                    ai_reason=BASIC_REASON,
                    confidence=BASIC_CONFIDENCE,
                )
                for result in initial[:options.limit]
            ]

        return await self.reranker.enhance(
            options.query,
            initial,
            contextual=options.contextual,
            rerank=options.rerank,
            limit=options.limit,
            min_confidence=options.min_confidence,
        )

    async def contextual_search(self, query: str, context: SearchContext, limit: int = 10) -> List[AISearchResult]:
        """Semantic search on a query enriched with the user's situation."""
        return await self.semantic_search(
            query=build_contextual_query(query, context),
            use_ai=True,
            contextual=True,
            rerank=True,
            limit=limit,
        )

    async def smart_search(self, query: str, items: Optional[List[Document]] = None) -> List[AISearchResult]:
        return await self.semantic_search(query=query, items=items, use_ai=True, contextual=True, rerank=True)

    async def quick_search(self, query: str, items: Optional[List[Document]] = None) -> List[AISearchResult]:
        return await self.semantic_search(query=query, items=items, use_ai=False, contextual=False, rerank=False)

    async def smart_suggestions(self, partial_query: str, limit: int = 5) -> List[str]:
        if self.reranker is None:
            return []
        return await self.reranker.smart_suggestions(partial_query, limit)

    def clear_cache(self) -> None:
        if self.reranker is not None:
            self.reranker.clear_cache()

    def clear_context(self) -> None:
        if self.reranker is not None:
            self.reranker.clear_context()
