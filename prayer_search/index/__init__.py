"""
Inverted-index retrieval for the prayer corpus.

Components:
- tokenizer: text cleaning (Arabic-aware) and token splitting
- index_builder: immutable token -> document index snapshots
- keywords: bidirectional concept/situation tables for semantic expansion
- retriever: direct, semantic and fuzzy (rapidfuzz) candidate strategies
- scorer: filtering, ranking, truncation and highlighting
"""

from .tokenizer import tokenize, tokenize_query, normalize_query
from .index_builder import InvertedIndex, build_index
from .retriever import retrieve, FIELD_WEIGHTS
from .scorer import assemble, browse, highlight

__all__ = [
    "tokenize",
    "tokenize_query",
    "normalize_query",
    "InvertedIndex",
    "build_index",
    "retrieve",
    "FIELD_WEIGHTS",
    "assemble",
    "browse",
    "highlight",
]
