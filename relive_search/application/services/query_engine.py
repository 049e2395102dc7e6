# relive_search/application/services/query_engine.py
import math
import time
import structlog
from typing import Dict, List, Sequence, Set, Tuple

from relive_search.application.services.inverted_index import IndexSnapshot
from relive_search.application.services.result_builder import (
    build_result,
    clamp_relevance,
    generate_highlights,
)
from relive_search.application.services.text_analysis import within_distance
from relive_search.domain.models import SearchResult

log = structlog.get_logger(__name__)

SCORE_SCALE = 100


class QueryEngine:
    """
    Candidate selection, TF-IDF scoring and highlighting over an IndexSnapshot.

    Fuzzy matching scans the whole vocabulary once per query term, which is fine
    for indexes in the low thousands of documents but grows linearly with the
    number of distinct tokens.
    """

    def __init__(self, fuzzy_max_distance: int = 2, snippet_length: int = 200):
        self.fuzzy_max_distance = fuzzy_max_distance
        self.snippet_length = snippet_length

    def find_candidates(
        self, snapshot: IndexSnapshot, terms: Sequence[str], fuzzy: bool = False
    ) -> Tuple[Set[str], List[str]]:
        """
        Returns the candidate doc ids plus the terms used to reach them: the query
        terms themselves followed by any fuzzy vocabulary matches.
        """
        candidates: Set[str] = set()
        expanded: Dict[str, None] = dict.fromkeys(terms)

        for term in terms:
            candidates.update(snapshot.postings_for(term))
            if not fuzzy:
                continue
            for indexed_term in snapshot.vocabulary():
                if indexed_term != term and within_distance(term, indexed_term, self.fuzzy_max_distance):
                    candidates.update(snapshot.postings_for(indexed_term))
                    expanded.setdefault(indexed_term)

        return candidates, list(expanded)

    def score(self, snapshot: IndexSnapshot, text: str, terms: Sequence[str]) -> float:
        if not text:
            return 0.0
        lowered = text.lower()
        total_documents = max(snapshot.document_count, 1)
        score = 0.0
        for term in terms:
            occurrences = lowered.count(term)
            if not occurrences:
                continue
            term_frequency = occurrences / len(text)
            document_frequency = max(len(snapshot.postings_for(term)), 1)
            score += term_frequency * math.log(total_documents / document_frequency)
        return clamp_relevance(score * SCORE_SCALE)

    def search(
        self,
        snapshot: IndexSnapshot,
        terms: Sequence[str],
        fuzzy: bool = False,
        include_highlights: bool = False,
    ) -> List[SearchResult]:
        engine_log = log.bind(action="index_search", terms=list(terms), fuzzy=fuzzy)
        if not terms or snapshot.is_empty:
            return []

        start_time = time.monotonic()
        candidate_ids, expanded_terms = self.find_candidates(snapshot, terms, fuzzy)

        results: List[SearchResult] = []
        for doc_id in sorted(candidate_ids):
            document = snapshot.get(doc_id)
            if document is None:
                continue
            text = document.composite_text
            lowered = text.lower()
            matched = [t for t in expanded_terms if t in lowered]
            highlights = generate_highlights(text, matched) if include_highlights else []
            results.append(build_result(
                document.source,
                relevance_score=self.score(snapshot, text, matched),
                matched_terms=matched,
                highlights=highlights,
                snippet_length=self.snippet_length,
            ))

        results.sort(key=lambda r: r.relevance_score, reverse=True)
        engine_log.debug(
            f"Index search scored {len(results)} candidates.",
            expanded_terms=expanded_terms,
            duration_ms=round((time.monotonic() - start_time) * 1000, 2),
        )
        return results
