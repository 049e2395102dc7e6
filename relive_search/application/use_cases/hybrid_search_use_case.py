# relive_search/application/use_cases/hybrid_search_use_case.py
import asyncio
import time
import structlog
from typing import List

from relive_search.application.services.document_collector import DocumentCollector
from relive_search.application.services.inverted_index import IndexSnapshot, build_index_snapshot
from relive_search.application.services.query_engine import QueryEngine
from relive_search.application.services.result_merger import rank_results
from relive_search.application.services.search_history import SearchHistoryTracker
from relive_search.application.services.structured_search import StructuredSearchAdapter
from relive_search.application.services.text_analysis import unique_terms
from relive_search.domain.models import SearchQuery, SearchResult, SearchStats

log = structlog.get_logger(__name__)

STRUCTURED_SOURCE = "structured_store"
INDEX_SOURCE = "memory_index"


class HybridSearchUseCase:
    """
    Entry point of the search subsystem: keeps the current index snapshot, runs
    the structured and index searches for each query, ranks the merged output
    and records the query in the history.
    """

    def __init__(
        self,
        collector: DocumentCollector,
        query_engine: QueryEngine,
        structured_search: StructuredSearchAdapter,
        history: SearchHistoryTracker,
    ):
        self.collector = collector
        self.query_engine = query_engine
        self.structured_search = structured_search
        self.history = history

        self._snapshot = IndexSnapshot()
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._rebuild_lock = asyncio.Lock()
        self._last_degraded_sources: List[str] = []
        log.info(
            "HybridSearchUseCase initialized",
            store_type=type(structured_search.store).__name__,
            history_key=history.settings_key,
        )

    @property
    def snapshot(self) -> IndexSnapshot:
        return self._snapshot

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Loads history and builds the first index. Safe to call repeatedly."""
        async with self._init_lock:
            if self._initialized:
                return
            init_log = log.bind(action="initialize")
            try:
                await self.history.load()
                await self.rebuild_index()
                self._initialized = True
                init_log.info("Search service initialized.", documents=self._snapshot.document_count)
            except Exception:
                init_log.exception("Failed to initialize search service.")

    async def rebuild_index(self) -> None:
        """Builds a fresh snapshot from all sources and swaps it in."""
        async with self._rebuild_lock:
            rebuild_log = log.bind(action="rebuild_index")
            rebuild_log.info("Rebuilding search index...")
            start_time = time.monotonic()
            outcome = await self.collector.collect()
            snapshot = build_index_snapshot(outcome.documents, outcome.failed_sources)
            self._snapshot = snapshot
            rebuild_log.info(
                "Search index rebuilt.",
                documents=snapshot.document_count,
                failed_sources=list(snapshot.failed_sources),
                duration_ms=round((time.monotonic() - start_time) * 1000, 2),
            )

    async def _search_index(self, snapshot: IndexSnapshot, terms: List[str], query: SearchQuery) -> List[SearchResult]:
        return self.query_engine.search(
            snapshot,
            terms,
            fuzzy=query.options.fuzzy_matching,
            include_highlights=query.options.include_highlights,
        )

    async def search(self, query: SearchQuery) -> List[SearchResult]:
        """
        Runs a hybrid search. Never raises: internal failures are logged and
        yield an empty list, with the failure visible in get_search_stats().
        """
        start_time = time.monotonic()
        search_log = log.bind(action="search", query_preview=query.text[:50])
        try:
            if not self._initialized:
                await self.initialize()

            if not query.text.strip():
                return []

            # One snapshot for the whole call, even if a rebuild swaps it meanwhile.
            snapshot = self._snapshot
            terms = unique_terms(query.text)

            structured_res, indexed_res = await asyncio.gather(
                self.structured_search.search(query),
                self._search_index(snapshot, terms, query),
                return_exceptions=True,
            )

            degraded_sources: List[str] = []
            if isinstance(structured_res, Exception):
                search_log.error("Structured search failed", error=str(structured_res))
                degraded_sources.append(STRUCTURED_SOURCE)
                structured_results = []
            else:
                if structured_res.degraded:
                    degraded_sources.append(STRUCTURED_SOURCE)
                structured_results = structured_res.results

            if isinstance(indexed_res, Exception):
                search_log.error("Index search failed", error=str(indexed_res))
                degraded_sources.append(INDEX_SOURCE)
                indexed_results = []
            else:
                indexed_results = indexed_res

            final_results = rank_results(structured_results, indexed_results, query.filters, query.options)

            execution_time_ms = (time.monotonic() - start_time) * 1000
            self._last_degraded_sources = degraded_sources
            await self.history.record(
                query.text,
                result_count=len(final_results),
                execution_time_ms=execution_time_ms,
                contact_ids=[r.metadata.contact_id for r in final_results if r.metadata.contact_id],
                degraded=bool(degraded_sources),
            )

            search_log.info(
                f"Hybrid search completed, found {len(final_results)} results.",
                from_store=len(structured_results),
                from_index=len(indexed_results),
                degraded_sources=degraded_sources,
                duration_ms=round(execution_time_ms, 2),
            )
            return final_results
        except Exception:
            search_log.exception("Search failed.")
            self._last_degraded_sources = ["search"]
            return []

    async def get_search_suggestions(self, partial: str, max_count: int = 5) -> List[str]:
        return self.history.suggestions(partial, max_count, self._snapshot.vocabulary())

    def get_search_stats(self) -> SearchStats:
        snapshot = self._snapshot
        return SearchStats(
            total_searches=len(self.history),
            average_execution_time_ms=self.history.average_execution_time_ms(),
            popular_queries=self.history.popular_queries(),
            most_searched_contacts=self.history.most_searched_contacts(),
            documents_by_type=snapshot.counts_by_type(),
            last_search_degraded=bool(self._last_degraded_sources),
            degraded_sources=list(self._last_degraded_sources),
            index_built_at=snapshot.built_at,
            index_failed_sources=list(snapshot.failed_sources),
        )

    async def clear_search_history(self) -> None:
        await self.history.clear()
