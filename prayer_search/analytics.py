"""
Search analytics: append-only query/click log with snapshot persistence.

The log holds at most 1000 entries (oldest evicted first). Every mutation
writes the *entire* log as one JSON array to the configured store: one write
per search, O(log size) each. Fine at this cap. With write_behind the writes
run on a single background thread, off the search path.

Stores:
- FileAnalyticsStore: local JSON file, replaced atomically
- GCSAnalyticsStore: single blob in a Cloud Storage bucket

Store failures raise PersistenceError; the recorder logs them and carries
on, so analytics can never fail a search.
"""

import json
import logging
import os
import tempfile
import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

MAX_ENTRIES = 1000
CLICK_LOOKBACK = 10


class AnalyticsEntry(BaseModel):
    query: str
    timestamp: int  # epoch milliseconds
    result_count: int = 0
    session_id: str
    clicked_document_id: Optional[str] = None


_ENTRIES = TypeAdapter(List[AnalyticsEntry])


class AnalyticsStore(ABC):
    """Durable single-key snapshot of the analytics log"""

    @abstractmethod
    def load(self) -> Optional[str]:
        """Return the stored JSON text, or None if nothing was saved yet."""
        pass

    @abstractmethod
    def save(self, payload: str) -> None:
        """Overwrite the snapshot with `payload` (JSON array text)."""
        pass

    def delete(self) -> None:
        """Remove the snapshot (default: store an empty log)."""
        self.save("[]")


class FileAnalyticsStore(AnalyticsStore):
    """Snapshot in a local JSON file"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Could not read analytics from {self.path}: {e}") from e

    def save(self, payload: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file then rename, so readers never see half a log
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise PersistenceError(f"Could not write analytics to {self.path}: {e}") from e

    def delete(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not delete {self.path}: {e}") from e


class GCSAnalyticsStore(AnalyticsStore):
    """Snapshot in one Cloud Storage blob"""

    def __init__(self, bucket_name: str, blob_name: str = "search_analytics.json", client=None):
        from google.cloud import storage

        self.client = client or storage.Client()
        self.bucket = self.client.bucket(bucket_name)
        self.blob_name = blob_name

    def load(self) -> Optional[str]:
        blob = self.bucket.blob(self.blob_name)
        try:
            if not blob.exists():
                return None
            return blob.download_as_bytes().decode("utf-8")
        except Exception as e:
            raise PersistenceError(f"Could not read gs://{self.bucket.name}/{self.blob_name}: {e}") from e

    def save(self, payload: str) -> None:
        blob = self.bucket.blob(self.blob_name)
        try:
            blob.upload_from_string(payload.encode("utf-8"), content_type="application/json")
        except Exception as e:
            raise PersistenceError(f"Could not write gs://{self.bucket.name}/{self.blob_name}: {e}") from e


def _new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class AnalyticsRecorder:
    """
    Append-only search log, safe to share between worker threads.

    Args:
        store: Persistence backend (None keeps the log in memory only)
        clock: Returns epoch seconds, injectable for tests
        session_id: Fixed for the recorder's lifetime (generated if omitted)
        write_behind: Hand snapshot writes to a single background thread
            instead of writing on the caller's thread. Writes keep their
            order; call close() to flush them on shutdown.
    """

    def __init__(
        self,
        store: Optional[AnalyticsStore] = None,
        clock: Optional[Callable[[], float]] = None,
        session_id: Optional[str] = None,
        write_behind: bool = False,
    ):
        self.store = store
        self.clock = clock or time.time
        self.session_id = session_id or _new_session_id()
        self._entries: List[AnalyticsEntry] = []
        self._lock = threading.Lock()
        self._writer: Optional[ThreadPoolExecutor] = None
        if write_behind and store is not None:
            self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="analytics-writer")

    @property
    def entries(self) -> List[AnalyticsEntry]:
        with self._lock:
            return list(self._entries)

    def load(self) -> int:
        """Load the persisted log once at startup. Returns the entry count."""
        if self.store is None:
            return 0
        try:
            payload = self.store.load()
        except PersistenceError as e:
            logger.warning(f"Could not load search analytics: {e}")
            return 0

        if not payload:
            return 0

        try:
            entries = _ENTRIES.validate_json(payload)
        except ValidationError as e:
            logger.warning(f"Ignoring corrupt analytics snapshot: {e.error_count()} errors")
            return 0

        with self._lock:
            self._entries = entries[-MAX_ENTRIES:]
            count = len(self._entries)
        logger.info(f"Loaded {count} analytics entries")
        return count

    def _save(self, payload: str) -> None:
        try:
            self.store.save(payload)
        except PersistenceError as e:
            logger.warning(f"Could not save search analytics: {e}")

    def _persist(self) -> None:
        """Write the current log. Caller holds self._lock."""
        if self.store is None:
            return
        payload = _ENTRIES.dump_json(self._entries).decode("utf-8")
        if self._writer is not None:
            # Submitted under the lock, so the single worker sees snapshots in order
            self._writer.submit(self._save, payload)
        else:
            self._save(payload)

    def record_search(self, query: str, result_count: int = 0) -> AnalyticsEntry:
        """Append an entry for a finished search (one store write)."""
        entry = AnalyticsEntry(
            query=query,
            timestamp=int(self.clock() * 1000),
            result_count=result_count,
            session_id=self.session_id,
        )
        with self._lock:
            self._entries.append(entry)
            if len(self._entries) > MAX_ENTRIES:
                del self._entries[:-MAX_ENTRIES]
            self._persist()
        return entry

    def complete_search(self, entry: AnalyticsEntry, result_count: int) -> None:
        """Back-fill the result count of an entry recorded before its search finished."""
        with self._lock:
            entry.result_count = result_count
            self._persist()

    def record_click(self, query: str, document_id: str) -> bool:
        """
        Attach a clicked document to the newest matching entry among the
        last 10. Returns False if no recent entry has that query.
        """
        with self._lock:
            for entry in reversed(self._entries[-CLICK_LOOKBACK:]):
                if entry.query == query:
                    entry.clicked_document_id = document_id
                    self._persist()
                    return True
        logger.debug(f"No recent search for click on '{query}'")
        return False

    def summary(self) -> Dict[str, object]:
        """Totals, top-10 queries, average result count and click-through rate."""
        entries = self.entries
        total = len(entries)
        counts = Counter(entry.query for entry in entries)
        clicks = sum(1 for entry in entries if entry.clicked_document_id)
        results = sum(entry.result_count for entry in entries)

        return {
            "total_searches": total,
            "popular_queries": [
                {"query": query, "count": count}
                for query, count in counts.most_common(10)
            ],
            "average_results": results / total if total else 0.0,
            "click_through_rate": clicks / total if total else 0.0,
        }

    def clear(self) -> None:
        with self._lock:
            self._entries = []
            if self.store is None:
                return
            if self._writer is not None:
                self._writer.submit(self._delete)
            else:
                self._delete()

    def _delete(self) -> None:
        try:
            self.store.delete()
        except PersistenceError as e:
            logger.warning(f"Could not clear search analytics: {e}")

    def close(self) -> None:
        """Flush pending background writes and stop the writer thread."""
        if self._writer is not None:
            self._writer.shutdown(wait=True)
            self._writer = None


def create_store(backend: str, path: Optional[str] = None, bucket: Optional[str] = None,
                 blob: str = "search_analytics.json") -> Optional[AnalyticsStore]:
    """Build a store from configuration values ("file", "gcs" or "none")."""
    backend = backend.lower()
    if backend == "none":
        return None
    if backend == "file":
        return FileAnalyticsStore(path or "data/search_analytics.json")
    if backend == "gcs":
        if not bucket:
            raise ValueError("ANALYTICS_BUCKET environment variable is required for gcs analytics")
        return GCSAnalyticsStore(bucket_name=bucket, blob_name=blob)
    raise ValueError(f"Unknown analytics backend: {backend}. Valid options: file, gcs, none")
