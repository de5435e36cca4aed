"""
Candidate retrieval: three independent strategies over one index snapshot.

- direct: exact token lookup, weighted by the fields the token occurs in
- semantic: lookup of concept-table expansions at 0.7x the field weight
- fuzzy: edit-distance neighbours of query tokens (the token itself included)
  at 0.5x normalized Levenshtein similarity

Each strategy returns its own {doc_index: Candidate} map; retrieve() merges
them additively, so a document hit by several strategies or fields
accumulates score.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from .index_builder import InvertedIndex
from .keywords import expand_query
from .tokenizer import tokenize, tokenize_query

logger = logging.getLogger(__name__)

FIELD_WEIGHTS: Dict[str, float] = {
    "title": 2.0,
    "category": 1.5,
    "tags": 1.2,
    "arabic": 1.0,
    "translation": 0.8,
    "latin": 0.6,
    "source": 0.4,
}

SEMANTIC_FACTOR = 0.7
FUZZY_FACTOR = 0.5
FUZZY_THRESHOLD = 0.7  # strict: similarity must exceed this
FUZZY_MIN_TOKEN_LENGTH = 3


@dataclass
class Candidate:
    """Partial score for one document"""
    doc_index: int
    score: float = 0.0
    matched_fields: Set[str] = field(default_factory=set)

    def add(self, score: float, fields: Iterable[str]) -> None:
        self.score += score
        self.matched_fields.update(fields)


Candidates = Dict[int, Candidate]


def _hit(candidates: Candidates, doc_index: int, score: float, fields: Iterable[str]) -> None:
    candidate = candidates.get(doc_index)
    if candidate is None:
        candidate = candidates[doc_index] = Candidate(doc_index)
    candidate.add(score, fields)


def matched_fields(index: InvertedIndex, doc_index: int, token: str) -> List[str]:
    """Fields of a document containing the token, in weight order."""
    per_field = index.field_tokens[doc_index]
    return [name for name in FIELD_WEIGHTS if token in per_field[name]]


def field_weight(fields: Iterable[str]) -> float:
    return sum(FIELD_WEIGHTS[name] for name in fields)


def direct_matches(index: InvertedIndex, query_tokens: List[str]) -> Candidates:
    candidates: Candidates = {}
    for token in query_tokens:
        for doc_index in index.lookup(token):
            fields = matched_fields(index, doc_index, token)
            _hit(candidates, doc_index, field_weight(fields), fields)
    return candidates


def semantic_matches(index: InvertedIndex, query: str, query_tokens: List[str]) -> Candidates:
    """
    Look up concept-table expansions of the query.

    Expansion phrases are tokenized like documents; tokens already present in
    the query are skipped (the direct strategy scores those).
    """
    own_tokens = set(query_tokens)
    expansion_tokens = []
    for term in expand_query(query):
        for token in tokenize(term):
            if token not in own_tokens and token not in expansion_tokens:
                expansion_tokens.append(token)

    candidates: Candidates = {}
    for token in expansion_tokens:
        for doc_index in index.lookup(token):
            fields = matched_fields(index, doc_index, token)
            _hit(candidates, doc_index, SEMANTIC_FACTOR * field_weight(fields), ["semantic"])

    if expansion_tokens:
        logger.debug(f"Semantic expansion for '{query}': {expansion_tokens}")
    return candidates


def fuzzy_matches(index: InvertedIndex, query_tokens: List[str]) -> Candidates:
    """
    Score vocabulary tokens within edit-distance reach of the query tokens.

    Similarity is 1 - levenshtein / max(len), so an exact vocabulary hit scores
    1.0 here on top of its direct-match weight. rapidfuzz prunes the scan with
    score_cutoff; the strict threshold is applied to what it returns.
    """
    candidates: Candidates = {}
    vocabulary = list(index.vocabulary)
    for token in query_tokens:
        if len(token) < FUZZY_MIN_TOKEN_LENGTH:
            continue
        neighbours = process.extract(
            token,
            vocabulary,
            scorer=Levenshtein.normalized_similarity,
            score_cutoff=FUZZY_THRESHOLD,
            limit=None,
        )
        for indexed, score, _ in neighbours:
            if score <= FUZZY_THRESHOLD:
                continue
            for doc_index in index.lookup(indexed):
                _hit(candidates, doc_index, FUZZY_FACTOR * score, ["fuzzy"])
    return candidates


def merge(*partials: Candidates) -> Candidates:
    """Additively merge strategy outputs."""
    merged: Candidates = {}
    for partial in partials:
        for doc_index, candidate in partial.items():
            _hit(merged, doc_index, candidate.score, candidate.matched_fields)
    return merged


def retrieve(index: InvertedIndex, query: str, fuzzy: bool = True, semantic: bool = True) -> Candidates:
    """
    Run the enabled strategies for a query and merge their scores.

    Args:
        index: Snapshot to search (never mutated)
        query: Raw user query
        fuzzy: Enable edit-distance matching
        semantic: Enable concept-table expansion

    Returns:
        {doc_index: Candidate} with accumulated scores
    """
    query_tokens = tokenize_query(query)
    if not query_tokens or not len(index):
        return {}

    partials = [direct_matches(index, query_tokens)]
    if semantic:
        partials.append(semantic_matches(index, query, query_tokens))
    if fuzzy:
        partials.append(fuzzy_matches(index, query_tokens))

    return merge(*partials)
