"""
Result assembly: filter, threshold, sort, truncate, highlight.
"""

import re
from typing import Dict, List, Optional, Sequence

from ..models import Document, SearchResult
from .index_builder import InvertedIndex
from .retriever import Candidates

_WORD_CHARS = r"\w\u0600-\u06FF"
HIGHLIGHT_FIELDS = {"title": "title", "translation": "translation"}


def accepts(document: Document, categories: Optional[Sequence[str]], tags: Optional[Sequence[str]]) -> bool:
    """Category must be one of `categories`; tags must overlap `tags`. Empty filters accept."""
    if categories and document.category not in categories:
        return False
    if tags and not document.tags.intersection(tags):
        return False
    return True


def highlight(document: Document, tokens: Sequence[str]) -> Dict[str, str]:
    """
    Wrap query tokens in <mark> inside title and translation.

    Case-insensitive and word-boundary safe: "doa" marks "Doa" but not the
    "doa" inside "berdoa".

    Example:
        >>> doc = Document(id="1", title="Doa Pagi", category="Harian")
        >>> highlight(doc, ["pagi"])
        {'title': 'Doa <mark>Pagi</mark>'}
    """
    terms = sorted({t for t in tokens if t}, key=len, reverse=True)
    if not terms:
        return {}

    pattern = re.compile(
        rf"(?<![{_WORD_CHARS}])({'|'.join(re.escape(t) for t in terms)})(?![{_WORD_CHARS}])",
        re.IGNORECASE,
    )

    highlights = {}
    for name, attribute in HIGHLIGHT_FIELDS.items():
        text = getattr(document, attribute)
        if text:
            highlights[name] = pattern.sub(r"<mark>\1</mark>", text)
    return highlights


def assemble(
    index: InvertedIndex,
    candidates: Candidates,
    query_tokens: Sequence[str],
    categories: Optional[Sequence[str]] = None,
    tags: Optional[Sequence[str]] = None,
    min_score: float = 0.1,
    limit: int = 50,
) -> List[SearchResult]:
    """
    Turn merged candidates into the final ranked list.

    Sorting is by score descending; equal scores keep corpus order, so the
    output is deterministic for a given snapshot and query.
    """
    ranked = sorted(
        (
            c for c in candidates.values()
            if c.score >= min_score and accepts(index.documents[c.doc_index], categories, tags)
        ),
        key=lambda c: (-c.score, c.doc_index),
    )

    results = []
    for candidate in ranked[:limit]:
        document = index.documents[candidate.doc_index]
        results.append(SearchResult(
            document=document,
            score=candidate.score,
            matched_fields=set(candidate.matched_fields),
            highlights=highlight(document, query_tokens),
        ))
    return results


def browse(
    index: InvertedIndex,
    categories: Optional[Sequence[str]] = None,
    tags: Optional[Sequence[str]] = None,
    limit: int = 50,
) -> List[SearchResult]:
    """Empty-query listing: first `limit` filtered documents, score 1."""
    results = []
    for document in index.documents:
        if len(results) >= limit:
            break
        if accepts(document, categories, tags):
            results.append(SearchResult(document=document, score=1.0))
    return results
