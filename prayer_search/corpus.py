"""
Corpus loading.

The corpus itself is owned elsewhere (editor, import/export); this module
only turns its JSON export into Document values. Field names from both the
editor export (arabic, latin, translation_id) and the engine's own naming
are accepted. Records that fail validation are skipped with a warning, so a
partly broken export still yields a usable (smaller) corpus.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import Document

logger = logging.getLogger(__name__)


class DocumentRecord(BaseModel):
    """Raw corpus record as exported by the editor"""
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    category: str = ""
    arabic_text: str = Field(default="", validation_alias=AliasChoices("arabic_text", "arabicText", "arabic"))
    latin_text: str = Field(default="", validation_alias=AliasChoices("latin_text", "latinText", "latin"))
    translation: str = Field(default="", validation_alias=AliasChoices("translation", "translation_id"))
    tags: List[str] = Field(default_factory=list)
    source: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value: Any) -> Any:
        # Editor ids are sometimes numeric
        return str(value) if isinstance(value, int) else value

    @field_validator("arabic_text", "latin_text", "translation", "source", "category", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_document(self) -> Document:
        return Document(
            id=self.id,
            title=self.title,
            category=self.category,
            arabic_text=self.arabic_text,
            latin_text=self.latin_text,
            translation=self.translation,
            tags=frozenset(self.tags),
            source=self.source,
        )


def parse_documents(records: Iterable[Any]) -> List[Document]:
    """Validate raw records, skipping the ones that do not fit."""
    documents = []
    for position, record in enumerate(records):
        try:
            documents.append(DocumentRecord.model_validate(record).to_document())
        except ValidationError as e:
            logger.warning(f"Skipping corpus record #{position}: {e.error_count()} validation errors")
    return documents


def load_corpus(path: Union[str, Path]) -> List[Document]:
    """
    Load a corpus JSON file (array of records, or {"items": [...]}).

    A missing or unreadable file yields an empty corpus.
    """
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning(f"Corpus file not found: {path} - starting with an empty corpus")
        return []
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read corpus {path}: {e}")
        return []

    if isinstance(payload, dict):
        payload = payload.get("items", [])
    if not isinstance(payload, list):
        logger.error(f"Corpus {path} is not a JSON array")
        return []

    documents = parse_documents(payload)
    logger.info(f"Loaded {len(documents)} documents from {path}")
    return documents
