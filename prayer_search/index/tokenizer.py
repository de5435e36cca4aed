"""
Tokenizer for the prayer index.

Tokenization pipeline:
1. Lowercase conversion
2. Split on whitespace
3. Strip punctuation, keeping word characters and the Arabic block
   (U+0600-U+06FF, so harakat survive next to the letters they mark)
4. Drop tokens of length <= 2 (documents only)

No stemming: the corpus mixes Indonesian, Arabic and English, and an
English stemmer mangles the first two.
"""

import re
from typing import List

# Everything that is neither a word character nor Arabic script
_STRIP_PATTERN = re.compile(r"[^\w\u0600-\u06FF]")
_WHITESPACE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 3


def clean_word(word: str) -> str:
    """
    Normalize a single whitespace-delimited word.

    Examples:
        >>> clean_word("Pagi,")
        'pagi'
        >>> clean_word("du'a")
        'dua'
    """
    return _STRIP_PATTERN.sub("", word.lower())


def tokenize(text: str) -> List[str]:
    """
    Tokenize document text for indexing.

    Args:
        text: Raw field text (any script)

    Returns:
        Cleaned tokens longer than two characters, in text order

    Examples:
        >>> tokenize("Doa Sebelum Makan!")
        ['doa', 'sebelum', 'makan']

        >>> tokenize("Ya Allah, berkahilah kami")
        ['allah', 'berkahilah', 'kami']

        >>> tokenize("   ")
        []
    """
    if not text:
        return []

    tokens = (clean_word(word) for word in text.lower().split())
    return [t for t in tokens if len(t) >= MIN_TOKEN_LENGTH]


def tokenize_query(query: str) -> List[str]:
    """
    Tokenize a user query.

    Same cleaning as documents, but short tokens are kept (they simply never
    hit the index) and duplicates are removed so a repeated word does not
    score twice.
    """
    if not query:
        return []

    seen = set()
    tokens = []
    for word in query.lower().split():
        token = clean_word(word)
        if token and token not in seen:
            seen.add(token)
            tokens.append(token)
    return tokens


def normalize_query(query: str) -> str:
    """Lowercase, trim and collapse whitespace (used for cache keys)."""
    return _WHITESPACE.sub(" ", query.lower().strip())
