# relive_search/application/services/search_history.py
import structlog
from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter, ValidationError

from relive_search.application.ports import ConversationStorePort
from relive_search.domain.exceptions import HistorySerializationError
from relive_search.domain.models import SearchHistoryEntry

log = structlog.get_logger(__name__)

_HISTORY_ADAPTER = TypeAdapter(List[SearchHistoryEntry])

POPULAR_LIMIT = 10


def decode_history(blob: str) -> List[SearchHistoryEntry]:
    try:
        return _HISTORY_ADAPTER.validate_json(blob)
    except ValidationError as e:
        raise HistorySerializationError(f"Stored search history is not valid: {e.error_count()} errors") from e


def encode_history(entries: Sequence[SearchHistoryEntry]) -> str:
    return _HISTORY_ADAPTER.dump_json(list(entries)).decode("utf-8")


class SearchHistoryTracker:
    """
    Capped, oldest-first list of executed searches, persisted as one JSON blob
    in the store's settings table.
    """

    def __init__(self, store: ConversationStorePort, settings_key: str = "search_history", max_entries: int = 100):
        self.store = store
        self.settings_key = settings_key
        self.max_entries = max_entries
        self._entries: List[SearchHistoryEntry] = []
        self.log = log.bind(component="SearchHistoryTracker", settings_key=settings_key)

    @property
    def entries(self) -> Tuple[SearchHistoryEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    async def load(self) -> None:
        load_log = self.log.bind(action="load_history")
        try:
            blob = await self.store.get_setting(self.settings_key)
            entries = decode_history(blob) if blob else []
        except Exception as e:
            load_log.error("Failed to load search history. Starting with an empty history.", error=str(e))
            self._entries = []
            return
        self._entries = entries[-self.max_entries:]
        load_log.info(f"Loaded {len(self._entries)} search history entries.")

    async def save(self) -> None:
        save_log = self.log.bind(action="save_history")
        try:
            await self.store.set_setting(self.settings_key, encode_history(self._entries))
        except Exception as e:
            save_log.error("Failed to persist search history. Latest entries are kept in memory only.", error=str(e))

    async def record(
        self,
        query: str,
        result_count: int,
        execution_time_ms: float,
        contact_ids: Iterable[str] = (),
        degraded: bool = False,
    ) -> SearchHistoryEntry:
        entry = SearchHistoryEntry(
            query=query,
            timestamp=datetime.now(timezone.utc),
            result_count=result_count,
            execution_time_ms=execution_time_ms,
            contact_ids=list(dict.fromkeys(contact_ids)),
            degraded=degraded,
        )
        self._entries.append(entry)
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            del self._entries[:overflow]
        await self.save()
        return entry

    async def clear(self) -> None:
        self._entries = []
        try:
            await self.store.delete_setting(self.settings_key)
            self.log.info("Search history cleared.")
        except Exception as e:
            self.log.error("Failed to delete stored search history.", error=str(e))

    def suggestions(self, partial: str, max_count: int, vocabulary: Iterable[str] = ()) -> List[str]:
        """
        History queries containing `partial` first, then indexed tokens starting
        with it, without repeats.
        """
        if max_count <= 0:
            return []
        needle = partial.lower()
        history_matches = dict.fromkeys(e.query for e in self._entries if needle in e.query.lower())
        suggestions = list(history_matches)[:max_count]

        if len(suggestions) < max_count:
            remaining = max_count - len(suggestions)
            suggestions.extend(sorted(t for t in vocabulary if t.startswith(needle))[:remaining])

        return list(dict.fromkeys(suggestions))[:max_count]

    def average_execution_time_ms(self) -> float:
        if not self._entries:
            return 0.0
        return sum(e.execution_time_ms for e in self._entries) / len(self._entries)

    def popular_queries(self, limit: int = POPULAR_LIMIT) -> List[str]:
        counts = Counter(e.query for e in self._entries)
        return [q for q, _ in counts.most_common(limit)]

    def most_searched_contacts(self, limit: int = POPULAR_LIMIT) -> List[str]:
        counts = Counter(c for e in self._entries for c in e.contact_ids)
        return [c for c, _ in counts.most_common(limit)]

    def last_entry(self) -> Optional[SearchHistoryEntry]:
        return self._entries[-1] if self._entries else None
