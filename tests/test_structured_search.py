"""Tests for the store-side relevance rules, the in-memory store and the structured adapter."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from conftest import make_commitment, make_conversation
from relive_search.application.services.structured_search import StructuredSearchAdapter
from relive_search.domain.models import (
    DocumentType,
    SearchFilters,
    SearchOptions,
    SearchQuery,
)
from relive_search.domain.relevance import (
    commitment_hit,
    conversation_hit,
    score_commitment,
    score_conversation,
)
from relive_search.infrastructure.persistence.memory_repositories import InMemoryConversationStore


class TestRelevanceRules:
    """Point-based scoring used by both store implementations."""

    def test_contact_name_match_with_recency(self, now):
        conversation = make_conversation(start_time=now - timedelta(days=2))
        assert score_conversation(conversation, "sarah", now) == 13

    def test_phone_match_last_month(self, now):
        conversation = make_conversation(start_time=now - timedelta(days=15))
        assert score_conversation(conversation, "555-01", now) == 9

    def test_transcript_occurrences_count_twice(self, now):
        conversation = make_conversation(
            start_time=now - timedelta(days=60),
            transcript="budget talk, more budget talk",
        )
        assert score_conversation(conversation, "budget", now) == 4

    def test_commitment_priority_and_status_bonus(self):
        urgent = make_commitment(text="send book club list", status="overdue", priority="high")
        relaxed = make_commitment(text="send book list", status="pending", priority="low")
        assert score_commitment(urgent, "book") == 14
        assert score_commitment(relaxed, "book") == 8

    def test_category_match(self):
        commitment = make_commitment(text="call the plumber", category="household", status="completed", priority="low")
        assert score_commitment(commitment, "house") == 3

    def test_hit_below_floor_is_dropped(self, now):
        assert conversation_hit(make_conversation(), "sarah", now, min_relevance=100) is None

    def test_non_matching_record_is_not_a_hit(self, now):
        assert conversation_hit(make_conversation(), "zebra", now, min_relevance=0) is None
        assert commitment_hit(make_commitment(), "zebra", min_relevance=0) is None

    def test_conversation_hit_rendering(self, now):
        conversation = make_conversation(contact_name=None, transcript="x" * 150)
        hit = conversation_hit(conversation, "555", now, min_relevance=1)
        assert hit.title == "Unknown Contact"
        assert hit.snippet == "x" * 100 + "..."

    def test_commitment_hit_rendering(self):
        hit = commitment_hit(make_commitment(status="overdue", priority="high"), "book", min_relevance=1)
        assert hit.snippet == "OVERDUE • HIGH • You"
        assert hit.type == DocumentType.COMMITMENT


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_advanced_search_sorted_by_relevance(self, store):
        hits = await store.advanced_search("book", [DocumentType.COMMITMENT])
        assert [h.id for h in hits] == ["m1", "m2"]
        assert hits[0].relevance > hits[1].relevance

    @pytest.mark.asyncio
    async def test_advanced_search_caps_each_type(self, now):
        store = InMemoryConversationStore(
            conversations=[make_conversation(f"c{i}", transcript="book talk") for i in range(3)],
            commitments=[make_commitment(f"m{i}", text="return the book") for i in range(3)],
        )
        hits = await store.advanced_search("book", [DocumentType.CONVERSATION, DocumentType.COMMITMENT], limit=3)
        conversation_hits = [h for h in hits if h.type == DocumentType.CONVERSATION]
        commitment_hits = [h for h in hits if h.type == DocumentType.COMMITMENT]
        assert len(hits) == 3
        assert len(conversation_hits) <= 2
        assert len(commitment_hits) <= 2

    @pytest.mark.asyncio
    async def test_search_conversations_matches_phone_newest_first(self, store):
        results = await store.search_conversations("555")
        assert [c.id for c in results] == ["c1", "c2"]
        results = await store.search_conversations("555", limit=1)
        assert [c.id for c in results] == ["c1"]

    @pytest.mark.asyncio
    async def test_search_conversations_takes_text_and_limit_only(self, store):
        with pytest.raises(TypeError):
            await store.search_conversations("555", contact_ids=["contact-mike"])

    @pytest.mark.asyncio
    async def test_commitments_filtered_by_status(self, store):
        overdue = await store.get_commitments(status="overdue")
        assert [c.id for c in overdue] == ["m1"]

    @pytest.mark.asyncio
    async def test_settings_roundtrip(self, store):
        assert await store.get_setting("k") is None
        await store.set_setting("k", "v")
        assert await store.get_setting("k") == "v"
        await store.delete_setting("k")
        assert await store.get_setting("k") is None


class TestStructuredSearchAdapter:
    """Rendering, normalization and failure handling of store hits."""

    @pytest.mark.asyncio
    async def test_results_are_normalized_and_prefixed(self, store):
        adapter = StructuredSearchAdapter(store)
        outcome = await adapter.search(SearchQuery(text="book"))
        assert not outcome.degraded
        by_id = {r.id: r for r in outcome.results}
        assert by_id["commitment_m1"].relevance_score == 1.0
        assert by_id["commitment_m2"].relevance_score == pytest.approx(0.8)
        assert by_id["commitment_m1"].description == "OVERDUE • HIGH • You"

    @pytest.mark.asyncio
    async def test_reservation_conversation_has_highlight(self, store):
        adapter = StructuredSearchAdapter(store)
        query = SearchQuery(text="reservation", options=SearchOptions(include_highlights=True))
        outcome = await adapter.search(query)
        result = next(r for r in outcome.results if r.id == "conversation_c1")
        assert result.title == "Sarah Johnson"
        assert result.relevance_score > 0
        assert result.highlights[0].text.lower() == "reservation"

    @pytest.mark.asyncio
    async def test_store_failure_marks_degraded(self, store):
        store.advanced_search = AsyncMock(side_effect=ConnectionError("db down"))
        outcome = await StructuredSearchAdapter(store).search(SearchQuery(text="book"))
        assert outcome.degraded
        assert outcome.results == []

    @pytest.mark.asyncio
    async def test_skips_store_when_types_exclude_structured(self, store):
        store.advanced_search = AsyncMock(return_value=[])
        query = SearchQuery(text="book", filters=SearchFilters(types=[DocumentType.INSIGHT]))
        outcome = await StructuredSearchAdapter(store).search(query)
        store.advanced_search.assert_not_awaited()
        assert outcome.results == []

    @pytest.mark.asyncio
    async def test_min_relevance_is_scaled_to_points(self, store):
        store.advanced_search = AsyncMock(return_value=[])
        query = SearchQuery(text="book", filters=SearchFilters(min_relevance_score=0.5))
        await StructuredSearchAdapter(store).search(query)
        assert store.advanced_search.await_args.kwargs["min_relevance"] == pytest.approx(5.0)

    def test_default_min_relevance_when_unset(self, store):
        adapter = StructuredSearchAdapter(store, default_min_relevance=1)
        assert adapter.min_relevance_for(SearchQuery(text="x")) == 1
        zero = SearchQuery(text="x", filters=SearchFilters(min_relevance_score=0))
        assert adapter.min_relevance_for(zero) == 1
