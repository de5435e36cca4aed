"""
Inverted index builder - maps tokens to the documents that contain them.

The index is an immutable snapshot: it is built wholesale from the full
corpus and never patched. Publishing a new corpus means building a new
index and swapping the reference (see SearchEngine.reindex).
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, KeysView, Mapping, Optional, Tuple

from ..models import Document
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

_EMPTY: FrozenSet[int] = frozenset()


@dataclass(frozen=True)
class InvertedIndex:
    """
    Read-only token -> document index snapshot.

    Attributes:
        documents: Corpus the snapshot was built from (positions are doc indices)
        postings: token -> non-empty frozenset of document indices
        field_tokens: per document, field name -> tokens of that field
        generation: Monotonic build number assigned by the owner
    """
    documents: Tuple[Document, ...]
    postings: Mapping[str, FrozenSet[int]]
    field_tokens: Tuple[Mapping[str, FrozenSet[str]], ...]
    generation: int = 0

    def lookup(self, token: str) -> FrozenSet[int]:
        return self.postings.get(token, _EMPTY)

    @property
    def vocabulary(self) -> KeysView:
        return self.postings.keys()

    def __len__(self) -> int:
        return len(self.documents)


def build_index(documents: Optional[Iterable[Document]], generation: int = 0) -> InvertedIndex:
    """
    Build an inverted index over the whole corpus.

    For each document, title, arabic, latin, translation, category, tags and
    source are tokenized (lowercase, punctuation stripped, tokens of length
    <= 2 dropped) and each token is mapped to the document position.

    Cost is O(total tokens). Entries that are not Document instances are
    skipped with a warning: a bad corpus yields a smaller (possibly empty)
    index, never an exception.

    Args:
        documents: Full corpus
        generation: Build number stored on the snapshot

    Returns:
        Immutable InvertedIndex

    Example:
        >>> docs = [Document(id="1", title="Doa Pagi", category="Harian")]
        >>> index = build_index(docs)
        >>> sorted(index.vocabulary)
        ['doa', 'harian', 'pagi']
        >>> index.lookup("pagi")
        frozenset({0})
    """
    kept = []
    skipped = 0
    for document in documents or ():
        if isinstance(document, Document):
            kept.append(document)
        else:
            skipped += 1

    if skipped:
        logger.warning(f"Skipped {skipped} malformed corpus entries while indexing")

    postings: Dict[str, set] = defaultdict(set)
    field_tokens = []

    for doc_index, document in enumerate(kept):
        per_field = {
            name: frozenset(tokenize(text))
            for name, text in document.field_texts().items()
        }
        field_tokens.append(MappingProxyType(per_field))

        for tokens in per_field.values():
            for token in tokens:
                postings[token].add(doc_index)

    index = InvertedIndex(
        documents=tuple(kept),
        postings=MappingProxyType({token: frozenset(ids) for token, ids in postings.items()}),
        field_tokens=tuple(field_tokens),
        generation=generation,
    )

    logger.debug(
        f"Built inverted index gen={generation}: {len(index.postings)} tokens "
        f"from {len(kept)} documents"
    )
    return index
