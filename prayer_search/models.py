"""
Data model for the prayer search core.

Corpus entries and results are plain dataclasses (cheap to build in the hot
path). Caller-facing options are pydantic models, so a wrong option type is
rejected up front with a ValidationError instead of failing mid-search.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Literal, Optional, Set

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class Document:
    """Immutable corpus entry"""
    id: str
    title: str
    category: str
    arabic_text: str = ""
    latin_text: str = ""
    translation: str = ""
    tags: FrozenSet[str] = frozenset()
    source: str = ""

    def field_texts(self) -> Dict[str, str]:
        """Searchable fields keyed by the names used in matched_fields."""
        return {
            "title": self.title,
            "category": self.category,
            "tags": " ".join(sorted(self.tags)),
            "arabic": self.arabic_text,
            "translation": self.translation,
            "latin": self.latin_text,
            "source": self.source,
        }


@dataclass
class SearchResult:
    """Single ranked hit"""
    document: Document
    score: float
    matched_fields: Set[str] = field(default_factory=set)
    highlights: Dict[str, str] = field(default_factory=dict)


@dataclass
class AISearchResult(SearchResult):
    """Search hit annotated with an AI relevance judgment"""
    ai_score: float = 0.0
    ai_reason: str = ""
    semantic_matches: List[str] = field(default_factory=list)
    confidence: float = 0.0

    @classmethod
    def from_result(
        cls,
        result: SearchResult,
        ai_score: float,
        ai_reason: str,
        confidence: float,
        semantic_matches: Optional[List[str]] = None,
    ) -> "AISearchResult":
        return cls(
            document=result.document,
            score=result.score,
            matched_fields=set(result.matched_fields),
            highlights=dict(result.highlights),
            ai_score=ai_score,
            ai_reason=ai_reason,
            semantic_matches=list(semantic_matches or []),
            confidence=confidence,
        )

    def with_confidence(self, confidence: float, ai_reason: str) -> "AISearchResult":
        return replace(self, confidence=confidence, ai_reason=ai_reason)


class SearchOptions(BaseModel):
    """Options for keyword/semantic/fuzzy retrieval"""
    model_config = ConfigDict(extra="forbid")

    query: str = ""
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    fuzzy: bool = True
    semantic: bool = True
    limit: int = Field(default=50, ge=1)
    min_score: float = Field(default=0.1, ge=0.0)


class SemanticSearchOptions(BaseModel):
    """Options for AI-enhanced search"""
    model_config = ConfigDict(extra="forbid")

    query: str = ""
    items: Optional[List[Document]] = None
    use_ai: bool = True
    contextual: bool = True
    rerank: bool = True
    limit: int = Field(default=10, ge=1)
    min_confidence: float = Field(default=0.3, ge=0.0, le=1.0)


class SearchContext(BaseModel):
    """User situation used to enrich a contextual query"""
    time_of_day: Optional[Literal["morning", "afternoon", "evening", "night"]] = None
    occasion: Optional[str] = None
    mood: Optional[Literal["grateful", "seeking", "troubled", "peaceful"]] = None
    recent_actions: List[str] = Field(default_factory=list)
