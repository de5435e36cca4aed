"""
AI relevance reranking of search candidates.

One completion call judges the whole candidate shortlist. Judgments are
cached per document id and merged onto the candidates of each call, so a
cache hit always carries the current documents and retrieval scores. The
merged set is optionally re-sorted by ai_score x confidence, filtered by
confidence and truncated.

Failure semantics: any provider failure (AIBoundaryError for network, HTTP
status, bad JSON or schema mismatch, or an unexpected exception) is logged
and turned into a degraded result set, the original candidates with
confidence 0.5. Callers never see the exception, and failures are never
cached.
"""

import asyncio
import logging
from collections import deque
from typing import Dict, List, Optional, Sequence

from ..exceptions import AIBoundaryError
from ..models import AISearchResult, SearchResult
from .base import ChatMessage, CompletionProvider
from .cache import CacheKey, JudgmentCache, make_cache_key
from .parser import CandidateAnalysis, parse_analyses, parse_suggestions

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert in Islamic prayers and duas. Analyze search relevance with "
    "deep understanding of Islamic context, situations, and meanings."
)

SUGGESTION_SYSTEM_PROMPT = (
    "You are an expert in Islamic prayers. Provide helpful search suggestions "
    "for finding relevant duas and prayers."
)

RERANK_PROMPT_TEMPLATE = """Analyze the relevance of these Islamic prayers/duas for the search query.

Search Query: "{query}"
{context}
Consider:
1. Direct meaning and purpose of the prayer
2. Situations where it would be used
3. Emotional/spiritual context
4. Arabic terms and their significance
5. Traditional Islamic categorization

Select at most {max_results} prayers that are relevant to the query. For each, provide:
- relevanceScore: number from 0 to 10
- reason: short explanation of why it matches
- semanticMatches: specific terms or concepts that match
- confidence: number from 0 to 1

Prayers to analyze:
{candidates}
Respond with ONLY a single JSON object in this exact format (no other text):
{{
  "analyses": [
    {{"index": 0, "relevanceScore": 8.5, "reason": "...", "semanticMatches": ["..."], "confidence": 0.9}}
  ]
}}"""

SUGGESTION_PROMPT_TEMPLATE = """Given the partial search query "{partial}" for Islamic prayers/duas, suggest {limit} relevant completions.
{context}
Consider:
- Common Islamic prayer situations
- Arabic terms and their meanings
- Emotional and spiritual contexts
- Daily prayer needs
- Special occasions and circumstances

Return only a JSON array of suggestions:
["suggestion1", "suggestion2", "suggestion3"]"""

DEFAULT_CONFIDENCE = 0.6
DEFAULT_REASON = "Standard search match"
FALLBACK_CONFIDENCE = 0.5
FALLBACK_REASON = "AI enhancement failed, using basic search"
MAX_ANALYSES = 5
CONTEXT_WINDOW = 5
CONTEXT_IN_PROMPT = 3

# document id -> judgment for that document
Judgments = Dict[str, CandidateAnalysis]


def rerank_results(results: Sequence[AISearchResult]) -> List[AISearchResult]:
    """
    Sort by ai_score x confidence descending.

    Ties go to higher confidence, then higher original score; remaining ties
    keep input order.
    """
    return sorted(
        results,
        key=lambda r: (-(r.ai_score * r.confidence), -r.confidence, -r.score),
    )


def degrade(candidates: Sequence[SearchResult], limit: int) -> List[AISearchResult]:
    """Fallback result set used when the AI boundary fails."""
    return [
        AISearchResult.from_result(
            result,
            ai_score=result.score,
            ai_reason=FALLBACK_REASON,
            confidence=FALLBACK_CONFIDENCE,
        )
        for result in candidates[:limit]
    ]


class AIReranker:
    """
    Reranks candidate sets with an external completion provider.

    Keeps three pieces of state, all in-process:
    - a bounded judgment cache keyed by (query, candidate ids), holding
      per-document judgments rather than finished results
    - a ring buffer of the last 5 queries used as prompt context
    - a map of in-flight requests so concurrent identical calls share one
      provider round-trip
    """

    def __init__(
        self,
        provider: CompletionProvider,
        cache: Optional[JudgmentCache] = None,
        max_candidates: int = 20,
    ):
        """
        Args:
            provider: Completion boundary
            cache: Judgment cache (default: 256 entries, no TTL)
            max_candidates: Candidates enumerated in the prompt
        """
        self.provider = provider
        self.cache = cache or JudgmentCache()
        self.max_candidates = max_candidates
        self._context: deque = deque(maxlen=CONTEXT_WINDOW)
        self._in_flight: Dict[CacheKey, asyncio.Task] = {}

    @property
    def context_history(self) -> List[str]:
        return list(self._context)

    def build_context(self, current_query: str) -> str:
        if not self._context:
            return ""
        recent = list(self._context)[-CONTEXT_IN_PROMPT:]
        return f"Recent search context: {' → '.join(recent)} → {current_query}"

    def build_prompt(self, query: str, candidates: Sequence[SearchResult], context: str = "") -> str:
        lines = []
        for index, result in enumerate(candidates):
            document = result.document
            lines.append(
                f"\n{index}. \"{document.title}\"\n"
                f"   Category: {document.category}\n"
                f"   Tags: {', '.join(sorted(document.tags))}\n"
                f"   Translation: {document.translation[:200]}\n"
                f"   Latin: {document.latin_text[:100]}\n"
                f"   Original Score: {result.score:.2f}\n"
            )

        return RERANK_PROMPT_TEMPLATE.format(
            query=query,
            context=f"Context: {context}\n" if context else "",
            max_results=MAX_ANALYSES,
            candidates="".join(lines),
        )

    def _judgments(self, shortlist: Sequence[SearchResult], analyses: List[CandidateAnalysis]) -> Judgments:
        """Key parsed analyses by the id of the shortlisted document they name."""
        judgments: Judgments = {}
        for analysis in analyses:
            if not 0 <= analysis.index < len(shortlist):
                logger.warning(f"Invalid index {analysis.index} in AI response, skipping")
                continue
            judgments.setdefault(shortlist[analysis.index].document.id, analysis)
        return judgments

    def _merge(self, candidates: Sequence[SearchResult], judgments: Judgments) -> List[AISearchResult]:
        merged = []
        for result in candidates:
            analysis = judgments.get(result.document.id)
            if analysis is None:
                merged.append(AISearchResult.from_result(
                    result,
                    ai_score=result.score,
                    ai_reason=DEFAULT_REASON,
                    confidence=DEFAULT_CONFIDENCE,
                ))
            else:
                merged.append(AISearchResult.from_result(
                    result,
                    ai_score=analysis.relevance_score,
                    ai_reason=analysis.reason or "No specific reason provided",
                    confidence=analysis.confidence,
                    semantic_matches=analysis.semantic_matches,
                ))
        return merged

    async def _judge(
        self,
        key: CacheKey,
        query: str,
        candidates: Sequence[SearchResult],
        contextual: bool,
    ) -> Judgments:
        shortlist = list(candidates[:self.max_candidates])
        context = self.build_context(query) if contextual else ""
        messages = [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="user", content=self.build_prompt(query, shortlist, context)),
        ]

        logger.info(f"AI reranking {len(shortlist)} candidates for '{query}'")
        response = await self.provider.complete(messages)
        analyses = parse_analyses(response)
        logger.debug(f"AI returned {len(analyses)} analyses")

        judgments = self._judgments(shortlist, analyses)
        self.cache.put(key, judgments)
        self._context.append(query)
        return judgments

    async def _judge_shared(
        self,
        key: CacheKey,
        query: str,
        candidates: Sequence[SearchResult],
        contextual: bool,
    ) -> Judgments:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._judge(key, query, candidates, contextual))
            self._in_flight[key] = task

            def _release(done: asyncio.Task) -> None:
                if self._in_flight.get(key) is done:
                    del self._in_flight[key]

            task.add_done_callback(_release)
        else:
            logger.debug(f"Joining in-flight AI request for '{query}'")

        # Shield so one cancelled waiter does not cancel the shared request
        return await asyncio.shield(task)

    async def enhance(
        self,
        query: str,
        candidates: Sequence[SearchResult],
        contextual: bool = True,
        rerank: bool = True,
        limit: int = 10,
        min_confidence: float = 0.3,
    ) -> List[AISearchResult]:
        """
        Enhance candidates with AI judgments.

        Args:
            query: User query
            candidates: Ranked retrieval output (order is the prompt order)
            contextual: Include recent queries in the prompt
            rerank: Re-sort by ai_score x confidence
            limit: Maximum results returned
            min_confidence: Drop results below this confidence

        Returns:
            AI-annotated results; degraded (confidence 0.5) on AI failure
        """
        if not candidates:
            return []

        key = make_cache_key(query, candidates)
        judgments = self.cache.get(key)

        if judgments is None:
            try:
                judgments = await self._judge_shared(key, query, candidates, contextual)
            except AIBoundaryError as e:
                logger.error(f"AI search enhancement failed: {e}")
                return degrade(candidates, limit)
            except Exception as e:
                logger.error(f"AI provider raised unexpected {type(e).__name__}: {e}")
                return degrade(candidates, limit)
        else:
            logger.debug(f"AI cache hit for '{query}'")

        merged = self._merge(candidates, judgments)
        ordered = rerank_results(merged) if rerank else merged
        return [r for r in ordered if r.confidence >= min_confidence][:limit]

    async def smart_suggestions(self, partial_query: str, limit: int = 5) -> List[str]:
        """
        Ask the model for query completions.

        Returns [] for partials shorter than 2 characters or on any AI failure.
        """
        if len(partial_query) < 2:
            return []

        context = self.build_context(partial_query)
        messages = [
            ChatMessage(role="system", content=SUGGESTION_SYSTEM_PROMPT),
            ChatMessage(role="user", content=SUGGESTION_PROMPT_TEMPLATE.format(
                partial=partial_query,
                limit=limit,
                context=f"Previous search context: {context}\n" if context else "",
            )),
        ]

        try:
            response = await self.provider.complete(messages)
            suggestions = parse_suggestions(response)
        except AIBoundaryError as e:
            logger.error(f"Failed to get AI suggestions: {e}")
            return []
        except Exception as e:
            logger.error(f"AI provider raised unexpected {type(e).__name__} for suggestions: {e}")
            return []

        return suggestions[:limit]

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("AI judgment cache cleared")

    def clear_context(self) -> None:
        self._context.clear()
