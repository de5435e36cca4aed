"""Unit test configuration - sample corpus and mocked completion provider"""

import json
from typing import List
from unittest.mock import AsyncMock, Mock

import pytest

from prayer_search.index import build_index
from prayer_search.models import Document, SearchResult
from prayer_search.reranking.base import CompletionProvider


SAMPLE_RECORDS = [
    {
        "id": "1",
        "title": "Doa Pagi",
        "arabic": "بِسْمِ اللَّهِ الرَّحْمَنِ الرَّحِيمِ",
        "latin": "Bismillahi rahmaani rahiim",
        "translation_id": "Dengan nama Allah Yang Maha Pengasih lagi Maha Penyayang",
        "category": "Doa Harian",
        "tags": ["pagi", "harian", "pembuka"],
        "source": "Al-Quran",
    },
    {
        "id": "2",
        "title": "Doa Sebelum Makan",
        "arabic": "اللَّهُمَّ بَارِكْ لَنَا فِيمَا رَزَقْتَنَا",
        "latin": "Allahumma barik lana fiima razaqtana",
        "translation_id": "Ya Allah, berkahilah kami dalam rezeki yang Engkau berikan",
        "category": "Doa Makan",
        "tags": ["makan", "sebelum", "berkah"],
        "source": "HR. Abu Dawud",
    },
    {
        "id": "3",
        "title": "Doa Malam",
        "arabic": "اللَّهُمَّ أَنْتَ رَبِّي لَا إِلَهَ إِلَّا أَنْتَ",
        "latin": "Allahumma anta rabbi la ilaha illa anta",
        "translation_id": "Ya Allah, Engkaulah Tuhanku, tidak ada tuhan selain Engkau",
        "category": "Doa Harian",
        "tags": ["malam", "harian", "tauhid"],
        "source": "HR. Bukhari",
    },
]


def make_document(record: dict) -> Document:
    return Document(
        id=record["id"],
        title=record["title"],
        category=record["category"],
        arabic_text=record["arabic"],
        latin_text=record["latin"],
        translation=record["translation_id"],
        tags=frozenset(record["tags"]),
        source=record["source"],
    )


@pytest.fixture
def sample_records() -> List[dict]:
    return [dict(record) for record in SAMPLE_RECORDS]


@pytest.fixture
def sample_documents() -> List[Document]:
    return [make_document(record) for record in SAMPLE_RECORDS]


@pytest.fixture
def sample_index(sample_documents):
    return build_index(sample_documents, generation=1)


@pytest.fixture
def corpus_file(tmp_path, sample_records):
    path = tmp_path / "prayers.json"
    path.write_text(json.dumps(sample_records, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def candidates(sample_documents) -> List[SearchResult]:
    """Retrieval output for three documents with descending scores"""
    return [
        SearchResult(document=doc, score=3.0 - position, matched_fields={"title"})
        for position, doc in enumerate(sample_documents)
    ]


@pytest.fixture
def mock_provider():
    """Completion provider whose complete() is an AsyncMock"""
    provider = Mock(spec=CompletionProvider)
    provider.complete = AsyncMock()
    provider.get_model_info.return_value = {"name": "mock", "type": "mock", "provider": "mock"}
    return provider
