# relive_search/infrastructure/cache/record_cache.py
from typing import Generic, Iterable, List, Optional, TypeVar

import structlog
from cachetools import TTLCache

from relive_search.application.ports import AnalysisSourcePort, TranscriptSourcePort
from relive_search.domain.models import AnalysisRecord, TranscriptRecord

log = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", AnalysisRecord, TranscriptRecord)


class _RecordTTLCache(Generic[RecordT]):
    def __init__(self, max_items: int, ttl_seconds: int):
        self.cache: TTLCache[str, RecordT] = TTLCache(maxsize=max_items, ttl=ttl_seconds)
        self.max_items = max_items
        self.ttl_seconds = ttl_seconds
        self.log = log.bind(cache_type=type(self).__name__, max_items=max_items, ttl_seconds=ttl_seconds)
        self.log.info(f"{type(self).__name__} initialized.")

    def get(self, record_id: str) -> Optional[RecordT]:
        cache_log = self.log.bind(record_id=record_id, action="cache_get")
        cached_item = self.cache.get(record_id)
        if cached_item:
            cache_log.debug("Cache hit.")
            return cached_item
        cache_log.debug("Cache miss.")
        return None

    def put(self, record: RecordT) -> None:
        self.cache[record.id] = record
        self.log.debug("Item added/updated in cache.", record_id=record.id, current_cache_size=self.cache.currsize)

    def put_many(self, records: Iterable[RecordT]) -> None:
        for record in records:
            self.put(record)

    def remove(self, record_id: str) -> None:
        self.cache.pop(record_id, None)

    def values(self) -> List[RecordT]:
        # Expired entries are skipped by TTLCache iteration.
        return list(self.cache.values())

    def clear(self) -> None:
        self.log.info("Clearing all items from cache.")
        self.cache.clear()

    def __len__(self) -> int:
        return len(self.cache)


class AnalysisCache(_RecordTTLCache[AnalysisRecord], AnalysisSourcePort):
    """Analyses produced by the AI pipeline, kept in memory only."""

    async def get_analyses(self) -> List[AnalysisRecord]:
        return sorted(self.values(), key=lambda a: a.analyzed_at, reverse=True)


class TranscriptSessionCache(_RecordTTLCache[TranscriptRecord], TranscriptSourcePort):
    """Transcription sessions, in every status."""

    async def get_transcription_sessions(self) -> List[TranscriptRecord]:
        return sorted(self.values(), key=lambda t: t.created_at, reverse=True)
