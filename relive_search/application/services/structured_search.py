# relive_search/application/services/structured_search.py
import structlog
from dataclasses import dataclass, field
from typing import List, Optional

from relive_search.application.ports import ConversationStorePort
from relive_search.application.services.document_collector import composite_text
from relive_search.application.services.result_builder import build_result, generate_highlights
from relive_search.application.services.text_analysis import unique_terms
from relive_search.domain.models import (
    STRUCTURED_TYPES,
    DocumentType,
    SearchQuery,
    SearchResult,
)

log = structlog.get_logger(__name__)

# Store relevance is on a points scale; ten points map to a perfect 1.0.
RELEVANCE_NORMALIZER = 10.0


@dataclass
class StructuredSearchOutcome:
    results: List[SearchResult] = field(default_factory=list)
    degraded: bool = False


class StructuredSearchAdapter:
    """
    Searches conversations and commitments directly in the store, bypassing the
    in-memory index, and renders the hits as SearchResults.
    """

    def __init__(self, store: ConversationStorePort, default_min_relevance: float = 1, snippet_length: int = 200):
        self.store = store
        self.default_min_relevance = default_min_relevance
        self.snippet_length = snippet_length

    @staticmethod
    def requested_types(query: SearchQuery) -> List[DocumentType]:
        if query.filters and query.filters.types:
            return [t for t in STRUCTURED_TYPES if t in query.filters.types]
        return list(STRUCTURED_TYPES)

    def min_relevance_for(self, query: SearchQuery) -> float:
        floor: Optional[float] = query.filters.min_relevance_score if query.filters else None
        if floor:
            return floor * RELEVANCE_NORMALIZER
        return self.default_min_relevance

    async def search(self, query: SearchQuery) -> StructuredSearchOutcome:
        text = query.text.strip()
        types = self.requested_types(query)
        adapter_log = log.bind(
            adapter="StructuredSearchAdapter",
            action="search",
            query_preview=text[:50],
            types=[t.value for t in types],
        )
        if not text or not types:
            return StructuredSearchOutcome()

        try:
            hits = await self.store.advanced_search(
                text,
                types=types,
                limit=query.options.max_results,
                min_relevance=self.min_relevance_for(query),
            )
        except Exception as e:
            adapter_log.error("Structured store search failed. Contributing no results.", error=str(e), exc_info=True)
            return StructuredSearchOutcome(degraded=True)

        terms = unique_terms(text)
        results: List[SearchResult] = []
        for hit in hits:
            document_text = composite_text(hit.data)
            lowered = document_text.lower()
            matched = [t for t in terms if t in lowered]
            if not matched and text.lower() in lowered:
                matched = [text.lower()]
            highlights = generate_highlights(document_text, matched) if query.options.include_highlights else []
            result = build_result(
                hit.data,
                relevance_score=hit.relevance / RELEVANCE_NORMALIZER,
                matched_terms=matched,
                highlights=highlights,
                snippet_length=self.snippet_length,
            )
            results.append(result.model_copy(update={"title": hit.title, "description": hit.snippet}))

        adapter_log.info(f"Structured search returned {len(results)} results.")
        return StructuredSearchOutcome(results=results)
