"""
Static concept tables for semantic query expansion.

Both tables are bidirectional: a key found in the query expands to its
synonyms, and a synonym found in the query expands back to its key.
Matching is on whole words of the normalized query, so "rest" does not fire
inside "interest".
"""

import re
from functools import lru_cache
from typing import Dict, List

# Indonesian concept -> English / transliteration variants
KEYWORD_SYNONYMS: Dict[str, List[str]] = {
    "doa": ["prayer", "supplication", "du'a", "dua"],
    "zikir": ["dhikr", "remembrance", "dzikir", "zikr"],
    "pagi": ["morning", "fajr", "subuh", "dawn"],
    "sore": ["evening", "maghrib", "sunset", "dusk"],
    "malam": ["night", "isha", "isya", "nighttime"],
    "makan": ["eat", "eating", "food", "meal"],
    "tidur": ["sleep", "sleeping", "bedtime", "rest"],
    "bepergian": ["travel", "journey", "trip", "safar"],
    "syukur": ["gratitude", "thankfulness", "grateful", "thanks"],
    "tobat": ["repentance", "forgiveness", "taubah", "istighfar"],
    "perlindungan": ["protection", "safety", "shelter", "refuge"],
    "kesehatan": ["health", "healing", "cure", "wellness"],
    "rezeki": ["sustenance", "provision", "livelihood", "rizq"],
    "ilmu": ["knowledge", "learning", "wisdom", "education"],
    "keluarga": ["family", "parents", "children", "spouse"],
    "masjid": ["mosque", "prayer place", "musalla", "surau"],
}

# Everyday situation -> descriptive phrases
SITUATION_PHRASES: Dict[str, List[str]] = {
    "sebelum makan": ["before eating", "pre-meal", "food blessing"],
    "sesudah makan": ["after eating", "post-meal", "gratitude for food"],
    "sebelum tidur": ["before sleep", "bedtime", "night prayer"],
    "bangun tidur": ["wake up", "morning", "getting up"],
    "keluar rumah": ["leaving home", "going out", "departure"],
    "masuk rumah": ["entering home", "arrival", "returning"],
    "naik kendaraan": ["boarding vehicle", "transportation", "travel"],
    "masuk masjid": ["entering mosque", "mosque entry", "prayer place"],
    "keluar masjid": ["leaving mosque", "mosque exit", "after prayer"],
    "ketika hujan": ["during rain", "rainy weather", "storm"],
    "sakit": ["illness", "sickness", "pain", "disease"],
    "sedih": ["sadness", "grief", "sorrow", "depression"],
    "senang": ["happiness", "joy", "celebration", "success"],
    "takut": ["fear", "anxiety", "worry", "concern"],
    "belajar": ["studying", "learning", "education", "knowledge"],
}


@lru_cache(maxsize=512)
def _phrase_pattern(phrase: str) -> "re.Pattern[str]":
    return re.compile(r"(?<!\w)" + re.escape(phrase) + r"(?!\w)")


def _contains_phrase(text: str, phrase: str) -> bool:
    return _phrase_pattern(phrase).search(text) is not None


def expand_query(query: str) -> List[str]:
    """
    Collect semantic expansion terms for a query.

    Args:
        query: Raw user query

    Returns:
        Unique expansion terms (phrases allowed), in table order

    Examples:
        >>> expand_query("doa makan")[:4]
        ['prayer', 'supplication', "du'a", 'dua']

        >>> expand_query("before sleep")
        ['tidur', 'sebelum tidur']
    """
    text = query.lower().strip()
    if not text:
        return []

    terms: List[str] = []
    for table in (KEYWORD_SYNONYMS, SITUATION_PHRASES):
        for key, synonyms in table.items():
            if _contains_phrase(text, key):
                terms.extend(synonyms)
            if any(_contains_phrase(text, synonym) for synonym in synonyms):
                terms.append(key)

    return list(dict.fromkeys(terms))


def suggestion_keywords() -> List[str]:
    """Keyword and situation keys offered as query suggestions."""
    return list(KEYWORD_SYNONYMS) + list(SITUATION_PHRASES)
