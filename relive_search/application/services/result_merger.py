# relive_search/application/services/result_merger.py
import structlog
from typing import Callable, List, Optional, Sequence

from relive_search.domain.models import (
    STRUCTURED_TYPES,
    DocumentType,
    SearchFilters,
    SearchOptions,
    SearchResult,
)

log = structlog.get_logger(__name__)

_TONE_TYPES = (DocumentType.CONVERSATION, DocumentType.INSIGHT)


def merge_results(structured: Sequence[SearchResult], indexed: Sequence[SearchResult]) -> List[SearchResult]:
    """
    Structured results are authoritative for conversations and commitments.
    Index results are only kept for the types the structured search does not
    cover, and never when their id is already present.
    """
    merged = list(structured)
    seen_ids = {r.id for r in structured}
    for result in indexed:
        if result.id in seen_ids or result.type in STRUCTURED_TYPES:
            continue
        seen_ids.add(result.id)
        merged.append(result)
    return merged


def _build_predicates(filters: SearchFilters) -> List[Callable[[SearchResult], bool]]:
    predicates: List[Callable[[SearchResult], bool]] = []

    if filters.types:
        types = set(filters.types)
        predicates.append(lambda r: r.type in types)

    if filters.contact_ids:
        contact_ids = set(filters.contact_ids)
        predicates.append(lambda r: r.metadata.contact_id is None or r.metadata.contact_id in contact_ids)

    if filters.date_range:
        start, end = filters.date_range.start, filters.date_range.end
        predicates.append(lambda r: start <= r.metadata.date <= end)

    if filters.categories:
        categories = set(filters.categories)
        predicates.append(lambda r: r.metadata.category is None or r.metadata.category in categories)

    if filters.commitment_statuses:
        statuses = set(filters.commitment_statuses)
        predicates.append(lambda r: r.type != DocumentType.COMMITMENT or r.metadata.status in statuses)

    if filters.emotional_tones:
        tones = set(filters.emotional_tones)
        predicates.append(lambda r: r.type not in _TONE_TYPES or r.metadata.emotional_tone in tones)

    if filters.min_relevance_score is not None:
        floor = filters.min_relevance_score
        predicates.append(lambda r: r.relevance_score >= floor)

    return predicates


def apply_filters(results: Sequence[SearchResult], filters: Optional[SearchFilters]) -> List[SearchResult]:
    if filters is None:
        return list(results)
    predicates = _build_predicates(filters)
    return [r for r in results if all(p(r) for p in predicates)]


_SORT_KEYS = {
    "relevance": lambda r: r.relevance_score,
    "date": lambda r: r.metadata.date,
    "title": lambda r: r.title,
}


def sort_results(results: Sequence[SearchResult], options: SearchOptions) -> List[SearchResult]:
    # sorted() is stable in both directions, so ties keep their merge order.
    return sorted(results, key=_SORT_KEYS[options.sort_by], reverse=options.sort_order == "desc")


def rank_results(
    structured: Sequence[SearchResult],
    indexed: Sequence[SearchResult],
    filters: Optional[SearchFilters],
    options: SearchOptions,
) -> List[SearchResult]:
    merged = merge_results(structured, indexed)
    filtered = apply_filters(merged, filters)
    ranked = sort_results(filtered, options)[:options.max_results]
    log.debug(
        "Results merged and ranked.",
        structured=len(structured),
        indexed=len(indexed),
        merged=len(merged),
        filtered=len(filtered),
        returned=len(ranked),
    )
    return ranked
