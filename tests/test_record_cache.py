"""Tests for the TTL-backed analysis and transcript caches."""

from datetime import timedelta

import pytest

from conftest import NOW, make_analysis, make_transcript
from relive_search.infrastructure.cache.record_cache import AnalysisCache, TranscriptSessionCache


class TestAnalysisCache:
    def test_put_get_and_len(self):
        cache = AnalysisCache(max_items=5, ttl_seconds=60)
        cache.put(make_analysis("a1"))

        assert len(cache) == 1
        assert cache.get("a1").conversation_id == "c1"
        assert cache.get("missing") is None

    def test_oldest_entries_are_evicted_at_capacity(self):
        cache = AnalysisCache(max_items=2, ttl_seconds=60)
        cache.put_many([make_analysis("a1"), make_analysis("a2"), make_analysis("a3")])
        assert len(cache) == 2

    def test_remove_and_clear(self):
        cache = AnalysisCache(max_items=5, ttl_seconds=60)
        cache.put_many([make_analysis("a1"), make_analysis("a2")])
        cache.remove("a1")
        cache.remove("not-there")
        assert cache.get("a1") is None
        cache.clear()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_get_analyses_newest_first(self):
        cache = AnalysisCache(max_items=5, ttl_seconds=60)
        cache.put(make_analysis("old", analyzed_at=NOW - timedelta(days=3)))
        cache.put(make_analysis("new", analyzed_at=NOW - timedelta(hours=1)))

        analyses = await cache.get_analyses()

        assert [a.id for a in analyses] == ["new", "old"]


class TestTranscriptSessionCache:
    @pytest.mark.asyncio
    async def test_returns_sessions_in_every_status(self):
        cache = TranscriptSessionCache(max_items=5, ttl_seconds=60)
        cache.put(make_transcript("t1", status="completed", created_at=NOW - timedelta(days=2)))
        cache.put(make_transcript("t2", status="failed", created_at=NOW - timedelta(days=1)))

        sessions = await cache.get_transcription_sessions()

        assert [s.id for s in sessions] == ["t2", "t1"]
