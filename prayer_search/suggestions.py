"""
Autocomplete suggestions over titles, categories, tags and the static
keyword/situation tables.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal

from rapidfuzz.distance import Levenshtein

from .index.index_builder import InvertedIndex
from .index.keywords import suggestion_keywords

SuggestionType = Literal["query", "category", "tag", "prayer"]

MIN_PARTIAL_LENGTH = 2


@dataclass
class Suggestion:
    text: str
    type: SuggestionType
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)


def suggestion_score(text: str, partial: str) -> float:
    """
    1.0 for a prefix match, 0.8 for a substring match, else fuzzy similarity.

    Examples:
        >>> suggestion_score("Doa Pagi", "doa")
        1.0
        >>> suggestion_score("Doa Pagi", "pagi")
        0.8
    """
    text_lower = text.lower()
    partial_lower = partial.lower()

    if text_lower.startswith(partial_lower):
        return 1.0
    if partial_lower in text_lower:
        return 0.8
    return Levenshtein.normalized_similarity(text_lower, partial_lower)


def suggest(index: InvertedIndex, partial_query: str, limit: int = 5) -> List[Suggestion]:
    """
    Build ranked autocomplete suggestions.

    Args:
        index: Snapshot whose documents provide titles, categories and tags
        partial_query: Text typed so far (at least 2 characters)
        limit: Maximum suggestions

    Returns:
        Suggestions sorted by score descending; ties keep source order
        (prayers, categories, tags, keywords)
    """
    partial = partial_query.strip().lower()
    if len(partial) < MIN_PARTIAL_LENGTH:
        return []

    suggestions: List[Suggestion] = []
    seen = set()

    def offer(text: str, kind: SuggestionType, metadata: Dict[str, Any] = None) -> None:
        if (text, kind) in seen or partial not in text.lower():
            return
        seen.add((text, kind))
        suggestions.append(Suggestion(
            text=text,
            type=kind,
            score=suggestion_score(text, partial),
            metadata=metadata or {},
        ))

    for document in index.documents:
        offer(document.title, "prayer", {"id": document.id, "category": document.category})

    for document in index.documents:
        offer(document.category, "category")

    for document in index.documents:
        for tag in sorted(document.tags):
            offer(tag, "tag")

    for keyword in suggestion_keywords():
        offer(keyword, "query")

    suggestions.sort(key=lambda s: -s.score)
    return suggestions[:limit]
