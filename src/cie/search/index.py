"""Per-record search index entries, rebuilt on first use and updated incrementally."""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable

from ..errors import AnalysisError, IndexIntegrityError
from ..models import AnalysisResult, ContentRecord, SearchIndexEntry, SemanticTag

logger = logging.getLogger(__name__)

RecordSource = Callable[[], Iterable[ContentRecord]]


class SearchIndex:
    """Mapping of content id -> SearchIndexEntry guarded by one lock.

    Entries are only dropped through remove(); readers work on snapshot().
    """

    def __init__(
        self,
        extractor=None,
        record_source: RecordSource | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.extractor = extractor
        self.record_source = record_source
        self.clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, SearchIndexEntry] = {}
        self._built = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, content_id: str) -> bool:
        with self._lock:
            return content_id in self._entries

    @property
    def built(self) -> bool:
        return self._built

    def rebuild_all(self, records: Iterable[ContentRecord] | None = None) -> int:
        """Replace every entry with a fresh scan of records (or the record source).

        Returns:
            Number of indexed entries.
        """
        if records is None:
            records = self.record_source() if self.record_source else []
        with self._lock:
            entries = {}
            for record in records:
                entries[record.id] = self._make_entry(record)
            self._entries = entries
            self._built = True
        logger.info(f"Search index rebuilt with {len(entries)} entries")
        return len(entries)

    def _ensure_built(self) -> None:
        if not self._built:
            self.rebuild_all()

    def upsert(
        self,
        content_id: str,
        record: ContentRecord,
        analysis: AnalysisResult | None = None,
        tags: list[SemanticTag] | None = None,
    ) -> SearchIndexEntry:
        if content_id != record.id:
            raise IndexIntegrityError(f"Entry id {content_id} does not match record id {record.id}")
        entry = self._make_entry(record, analysis, tags)
        with self._lock:
            self._ensure_built()
            self._entries[content_id] = entry
        logger.debug(f"Indexed {content_id}")
        return _copy(entry)

    def remove(self, content_id: str) -> None:
        with self._lock:
            self._ensure_built()
            if content_id not in self._entries:
                raise IndexIntegrityError(f"No index entry for {content_id}")
            del self._entries[content_id]
        logger.info(f"Removed {content_id} from search index")

    def get(self, content_id: str) -> SearchIndexEntry:
        with self._lock:
            self._ensure_built()
            if content_id not in self._entries:
                raise IndexIntegrityError(f"No index entry for {content_id}")
            return _copy(self._entries[content_id])

    def snapshot(self) -> list[SearchIndexEntry]:
        """Consistent copy of all entries in insertion order."""
        with self._lock:
            self._ensure_built()
            return [_copy(e) for e in self._entries.values()]

    def _make_entry(
        self,
        record: ContentRecord,
        analysis: AnalysisResult | None = None,
        tags: list[SemanticTag] | None = None,
    ) -> SearchIndexEntry:
        if analysis is None and self.extractor is not None:
            try:
                analysis = self.extractor.analyze(record.body, record.type, record.ocr_text)
            except AnalysisError as e:
                logger.warning(f"Indexing {record.id} without keywords: {e}")

        if tags is None:
            tag_names = {record.type.value, record.source.lower()}
        else:
            tag_names = {t.name.lower() for t in tags}

        return SearchIndexEntry(
            content_id=record.id,
            title=record.title,
            body=record.body,
            ocr_text=record.ocr_text or "",
            content_type=record.type,
            keywords=set(analysis.keywords) if analysis else set(),
            entities={e.text.lower() for e in analysis.entities} if analysis else set(),
            tags=tag_names,
            created_at=record.created_at,
            last_indexed=self.clock(),
        )


def _copy(entry: SearchIndexEntry) -> SearchIndexEntry:
    return replace(entry, keywords=set(entry.keywords), entities=set(entry.entities), tags=set(entry.tags))
