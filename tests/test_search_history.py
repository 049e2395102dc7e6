"""Tests for history persistence, capping, stats and suggestions."""

from unittest.mock import AsyncMock

import pytest

from relive_search.application.services.search_history import (
    SearchHistoryTracker,
    decode_history,
    encode_history,
)
from relive_search.domain.exceptions import HistorySerializationError
from relive_search.infrastructure.persistence.memory_repositories import InMemoryConversationStore


class TestHistoryPersistence:
    """The history is one JSON blob under a settings key."""

    @pytest.mark.asyncio
    async def test_keeps_only_the_most_recent_entries(self):
        store = InMemoryConversationStore()
        tracker = SearchHistoryTracker(store, max_entries=100)

        for i in range(150):
            await tracker.record(f"query {i}", result_count=i, execution_time_ms=1.0)

        assert len(tracker) == 100
        assert tracker.entries[0].query == "query 50"
        assert tracker.entries[-1].query == "query 149"
        stored = decode_history(store.settings["search_history"])
        assert [e.query for e in stored] == [f"query {i}" for i in range(50, 150)]

    @pytest.mark.asyncio
    async def test_history_survives_reload(self):
        store = InMemoryConversationStore()
        tracker = SearchHistoryTracker(store)
        await tracker.record("dinner", result_count=2, execution_time_ms=4.0, contact_ids=["contact-sarah"])

        reloaded = SearchHistoryTracker(store)
        await reloaded.load()

        assert [e.query for e in reloaded.entries] == ["dinner"]
        assert reloaded.entries[0].contact_ids == ["contact-sarah"]

    @pytest.mark.asyncio
    async def test_corrupt_blob_starts_empty(self):
        store = InMemoryConversationStore(settings={"search_history": "{not json"})
        tracker = SearchHistoryTracker(store)
        await tracker.load()
        assert len(tracker) == 0

    @pytest.mark.asyncio
    async def test_save_failure_keeps_entry_in_memory(self):
        store = InMemoryConversationStore()
        store.set_setting = AsyncMock(side_effect=ConnectionError("db down"))
        tracker = SearchHistoryTracker(store)

        await tracker.record("budget", result_count=0, execution_time_ms=2.0)

        assert len(tracker) == 1

    @pytest.mark.asyncio
    async def test_clear_removes_stored_blob(self):
        store = InMemoryConversationStore()
        tracker = SearchHistoryTracker(store)
        await tracker.record("budget", result_count=0, execution_time_ms=2.0)

        await tracker.clear()

        assert len(tracker) == 0
        assert "search_history" not in store.settings

    def test_decode_rejects_wrong_shape(self):
        with pytest.raises(HistorySerializationError):
            decode_history('[{"query": 1}]')

    def test_encode_empty(self):
        assert encode_history([]) == "[]"


class TestHistoryStats:
    @pytest.mark.asyncio
    async def test_popular_queries_and_contacts(self):
        tracker = SearchHistoryTracker(InMemoryConversationStore())
        for query, contacts in [("dinner", ["s"]), ("budget", ["m"]), ("dinner", ["s", "m"])]:
            await tracker.record(query, result_count=1, execution_time_ms=3.0, contact_ids=contacts)

        assert tracker.popular_queries() == ["dinner", "budget"]
        assert tracker.most_searched_contacts() == ["s", "m"]
        assert tracker.average_execution_time_ms() == pytest.approx(3.0)

    def test_average_of_empty_history(self):
        assert SearchHistoryTracker(InMemoryConversationStore()).average_execution_time_ms() == 0.0


class TestSuggestions:
    @pytest.mark.asyncio
    async def test_history_first_then_vocabulary(self):
        tracker = SearchHistoryTracker(InMemoryConversationStore())
        await tracker.record("dinner reservation", result_count=1, execution_time_ms=1.0)
        await tracker.record("dinner plans", result_count=1, execution_time_ms=1.0)

        suggestions = tracker.suggestions("din", 5, vocabulary=["dinner", "dining", "zebra"])

        assert suggestions == ["dinner reservation", "dinner plans", "dining", "dinner"]

    @pytest.mark.asyncio
    async def test_no_repeats(self):
        tracker = SearchHistoryTracker(InMemoryConversationStore())
        await tracker.record("dinner", result_count=1, execution_time_ms=1.0)
        await tracker.record("dinner", result_count=1, execution_time_ms=1.0)

        suggestions = tracker.suggestions("din", 5, vocabulary=["dinner"])

        assert suggestions == ["dinner"]

    def test_respects_max_count(self):
        tracker = SearchHistoryTracker(InMemoryConversationStore())
        assert tracker.suggestions("b", 2, vocabulary=["book", "budget", "bread"]) == ["book", "bread"]
        assert tracker.suggestions("b", 0, vocabulary=["book"]) == []
