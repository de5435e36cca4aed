"""
Prayer Search - FastAPI application for hybrid prayer search

HTTP surface over the search core:
- Keyword/semantic/fuzzy search on an in-memory inverted index
- Optional AI reranking through a configurable completion provider
- Autocomplete suggestions (static and AI-generated)
- Search/click analytics with snapshot persistence

The core itself is request/response only; anything "live" (as-you-type
refresh, etc.) belongs to the client. Retrieval, indexing and analytics
writes are synchronous and run in worker threads (asyncio.to_thread).
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

# Load environment variables from .env.local (local dev) or .env (production)
from dotenv import load_dotenv

env_local = Path(__file__).parent.parent / ".env.local"
env_file = Path(__file__).parent.parent / ".env"

if env_local.exists():
    load_dotenv(env_local, override=True)
elif env_file.exists():
    load_dotenv(env_file, override=True)

# Configure logging: console (brief) + file (detailed)
from prayer_search.logging_config import setup_logging

log_level = os.getenv("LOG_LEVEL", "INFO").upper()
setup_logging(
    log_file=os.getenv("LOG_FILE", "logs/prayer-search.log"),
    console_level=getattr(logging, log_level, logging.INFO),
    file_level=logging.DEBUG  # Always DEBUG in file for troubleshooting
)

logger = logging.getLogger(__name__)


from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .analytics import AnalyticsRecorder, create_store
from .corpus import DocumentRecord, load_corpus, parse_documents
from .engine import AISearchEngine, SearchEngine
from .models import AISearchResult, Document, SearchContext, SearchOptions, SearchResult
from .reranking import AIReranker, CompletionFactory, JudgmentCache, get_completion_provider

PORT = int(os.getenv("PORT", "8080"))

APP_VERSION = "0.1.0"
APP_START_TIME = datetime.utcnow().isoformat() + "Z"

# Global instances (set in lifespan)
search_engine: Optional[SearchEngine] = None
ai_search_engine: Optional[AISearchEngine] = None
analytics_recorder: Optional[AnalyticsRecorder] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup resources"""
    global search_engine, ai_search_engine, analytics_recorder

    store = create_store(
        backend=os.getenv("ANALYTICS_BACKEND", "file"),
        path=os.getenv("ANALYTICS_PATH", "data/search_analytics.json"),
        bucket=os.getenv("ANALYTICS_BUCKET"),
        blob=os.getenv("ANALYTICS_BLOB", "search_analytics.json"),
    )
    analytics_recorder = AnalyticsRecorder(store=store, write_behind=True)
    analytics_recorder.load()

    corpus_path = os.getenv("CORPUS_PATH", "data/prayers.json")
    search_engine = SearchEngine(load_corpus(corpus_path), analytics=analytics_recorder)

    provider = get_completion_provider(force_reload=True)
    reranker = None
    if provider is not None:
        reranker = AIReranker(
            provider,
            cache=JudgmentCache(
                max_entries=int(os.getenv("AI_CACHE_MAX_ENTRIES", "256")),
                ttl_seconds=float(os.getenv("AI_CACHE_TTL_SECONDS", "0")),
            ),
        )
        logger.info(f"AI reranking enabled: {provider.get_model_info()}")
    else:
        logger.info("AI reranking disabled")

    ai_search_engine = AISearchEngine(search_engine, reranker=reranker)

    yield

    logger.info("Shutting down...")
    CompletionFactory.cleanup()
    if analytics_recorder is not None:
        analytics_recorder.close()
    search_engine = None
    ai_search_engine = None
    analytics_recorder = None


app = FastAPI(
    title="Prayer Search API",
    description="Hybrid keyword/semantic/fuzzy prayer search with optional AI reranking",
    version=APP_VERSION,
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_search_engine() -> SearchEngine:
    if search_engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search engine not initialized",
        )
    return search_engine


def get_ai_search_engine() -> AISearchEngine:
    if ai_search_engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search engine not initialized",
        )
    return ai_search_engine


# Request/Response models
class HealthResponse(BaseModel):
    status: str
    version: str
    started_at: str
    uptime_seconds: float
    documents: int
    index_generation: int
    ai_enabled: bool


class DocumentItem(BaseModel):
    id: str
    title: str
    category: str
    arabic_text: str
    latin_text: str
    translation: str
    tags: List[str]
    source: str

    @classmethod
    def from_document(cls, document: Document) -> "DocumentItem":
        return cls(
            id=document.id,
            title=document.title,
            category=document.category,
            arabic_text=document.arabic_text,
            latin_text=document.latin_text,
            translation=document.translation,
            tags=sorted(document.tags),
            source=document.source,
        )


class SearchResultItem(BaseModel):
    document: DocumentItem
    score: float
    matched_fields: List[str]
    highlights: Dict[str, str]

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResultItem":
        return cls(
            document=DocumentItem.from_document(result.document),
            score=result.score,
            matched_fields=sorted(result.matched_fields),
            highlights=result.highlights,
        )


class AISearchResultItem(SearchResultItem):
    ai_score: float
    ai_reason: str
    semantic_matches: List[str]
    confidence: float

    @classmethod
    def from_result(cls, result: AISearchResult) -> "AISearchResultItem":
        return cls(
            document=DocumentItem.from_document(result.document),
            score=result.score,
            matched_fields=sorted(result.matched_fields),
            highlights=result.highlights,
            ai_score=result.ai_score,
            ai_reason=result.ai_reason,
            semantic_matches=result.semantic_matches,
            confidence=result.confidence,
        )


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResultItem]
    total: int


class SemanticSearchRequest(BaseModel):
    query: str = Field(default="", description="User query")
    items: Optional[List[DocumentRecord]] = Field(
        default=None,
        description="Search these documents instead of the loaded corpus",
    )
    use_ai: bool = True
    contextual: bool = True
    rerank: bool = True
    limit: int = Field(default=10, ge=1, le=50)
    min_confidence: float = Field(default=0.3, ge=0.0, le=1.0)


class ContextualSearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    context: SearchContext = Field(default_factory=SearchContext)
    limit: int = Field(default=10, ge=1, le=50)


class SemanticSearchResponse(BaseModel):
    query: str
    results: List[AISearchResultItem]
    total: int


class SuggestionItem(BaseModel):
    text: str
    type: str
    score: float
    metadata: dict = Field(default_factory=dict)


class SuggestionsResponse(BaseModel):
    query: str
    suggestions: List[SuggestionItem]


class SmartSuggestionsResponse(BaseModel):
    query: str
    suggestions: List[str]


class ClickRequest(BaseModel):
    query: str = Field(..., min_length=1)
    document_id: str = Field(..., min_length=1)


class ClickResponse(BaseModel):
    recorded: bool


class PopularQuery(BaseModel):
    query: str
    count: int


class AnalyticsSummaryResponse(BaseModel):
    total_searches: int
    popular_queries: List[PopularQuery]
    average_results: float
    click_through_rate: float


class CorpusReplaceRequest(BaseModel):
    items: List[dict] = Field(..., description="Raw corpus records (invalid ones are skipped)")


class CorpusReplaceResponse(BaseModel):
    documents: int
    skipped: int
    tokens: int
    index_generation: int


# Routes
@app.get("/", response_model=dict)
async def root():
    """Root endpoint"""
    return {
        "service": "Prayer Search API",
        "version": APP_VERSION,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse)
async def health(engine: SearchEngine = Depends(get_search_engine)):
    """Health check endpoint"""
    start_time = datetime.fromisoformat(APP_START_TIME.rstrip('Z'))
    uptime = (datetime.utcnow() - start_time).total_seconds()
    snapshot = engine.snapshot

    return HealthResponse(
        status="healthy",
        version=APP_VERSION,
        started_at=APP_START_TIME,
        uptime_seconds=round(uptime, 2),
        documents=len(snapshot),
        index_generation=snapshot.generation,
        ai_enabled=ai_search_engine is not None and ai_search_engine.reranker is not None,
    )


@app.post("/v1/search", response_model=SearchResponse)
async def search(request: SearchOptions, engine: SearchEngine = Depends(get_search_engine)):
    """
    Keyword search with semantic expansion and fuzzy matching.

    Empty query lists the first `limit` documents (after category/tag filters).
    """
    results = await asyncio.to_thread(engine.search, request)
    return SearchResponse(
        query=request.query,
        results=[SearchResultItem.from_result(r) for r in results],
        total=len(results),
    )


@app.post("/v1/search/semantic", response_model=SemanticSearchResponse)
async def semantic_search(
    request: SemanticSearchRequest,
    engine: AISearchEngine = Depends(get_ai_search_engine),
):
    """
    AI-enhanced search.

    AI failures never fail the request: results then carry confidence 0.5
    and a fallback reason.
    """
    items = [record.to_document() for record in request.items] if request.items is not None else None
    results = await engine.semantic_search(
        query=request.query,
        items=items,
        use_ai=request.use_ai,
        contextual=request.contextual,
        rerank=request.rerank,
        limit=request.limit,
        min_confidence=request.min_confidence,
    )
    return SemanticSearchResponse(
        query=request.query,
        results=[AISearchResultItem.from_result(r) for r in results],
        total=len(results),
    )


@app.post("/v1/search/contextual", response_model=SemanticSearchResponse)
async def contextual_search(
    request: ContextualSearchRequest,
    engine: AISearchEngine = Depends(get_ai_search_engine),
):
    """AI search on a query enriched with time of day, occasion, mood and recent actions."""
    results = await engine.contextual_search(request.query, request.context, limit=request.limit)
    return SemanticSearchResponse(
        query=request.query,
        results=[AISearchResultItem.from_result(r) for r in results],
        total=len(results),
    )


@app.get("/v1/suggestions", response_model=SuggestionsResponse)
async def suggestions(
    q: str = Query(..., description="Partial query"),
    limit: int = Query(default=5, ge=1, le=20),
    engine: SearchEngine = Depends(get_search_engine),
):
    """Autocomplete from titles, categories, tags and keyword tables."""
    found = await asyncio.to_thread(engine.suggest, q, limit)
    return SuggestionsResponse(
        query=q,
        suggestions=[
            SuggestionItem(text=s.text, type=s.type, score=s.score, metadata=s.metadata)
            for s in found
        ],
    )


@app.get("/v1/suggestions/smart", response_model=SmartSuggestionsResponse)
async def smart_suggestions(
    q: str = Query(..., description="Partial query"),
    limit: int = Query(default=5, ge=1, le=20),
    engine: AISearchEngine = Depends(get_ai_search_engine),
):
    """AI-generated query completions (empty when AI is disabled or fails)."""
    return SmartSuggestionsResponse(query=q, suggestions=await engine.smart_suggestions(q, limit))


@app.post("/v1/analytics/click", response_model=ClickResponse)
async def record_click(request: ClickRequest, engine: SearchEngine = Depends(get_search_engine)):
    """Attach a clicked document to the most recent matching search."""
    recorded = await asyncio.to_thread(engine.record_click, request.query, request.document_id)
    return ClickResponse(recorded=recorded)


@app.get("/v1/analytics", response_model=AnalyticsSummaryResponse)
async def analytics_summary():
    """Search totals, popular queries and click-through rate."""
    if analytics_recorder is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Analytics not initialized",
        )
    return AnalyticsSummaryResponse(**analytics_recorder.summary())


@app.delete("/v1/analytics", status_code=status.HTTP_204_NO_CONTENT)
async def clear_analytics():
    if analytics_recorder is not None:
        await asyncio.to_thread(analytics_recorder.clear)


@app.put("/v1/corpus", response_model=CorpusReplaceResponse)
async def replace_corpus(request: CorpusReplaceRequest, engine: SearchEngine = Depends(get_search_engine)):
    """
    Replace the whole corpus and reindex.

    In-flight searches finish on the snapshot they started with.
    """
    documents = parse_documents(request.items)
    index = await asyncio.to_thread(engine.reindex, documents)

    # Cached AI judgments refer to the old corpus
    if ai_search_engine is not None:
        ai_search_engine.clear_cache()

    return CorpusReplaceResponse(
        documents=len(index),
        skipped=len(request.items) - len(documents),
        tokens=len(index.postings),
        index_generation=index.generation,
    )


@app.delete("/v1/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache(engine: AISearchEngine = Depends(get_ai_search_engine)):
    engine.clear_cache()


@app.delete("/v1/context", status_code=status.HTTP_204_NO_CONTENT)
async def clear_context(engine: AISearchEngine = Depends(get_ai_search_engine)):
    engine.clear_context()


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.error(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc),
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "prayer_search.main:app",
        host="0.0.0.0",
        port=PORT,
        reload=True,  # Development only
    )
