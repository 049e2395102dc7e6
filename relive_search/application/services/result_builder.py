# relive_search/application/services/result_builder.py
from typing import Iterable, List, Sequence

from relive_search.application.services.document_collector import document_type_of
from relive_search.application.services.text_analysis import find_occurrences
from relive_search.domain.models import (
    AnalysisRecord,
    CommitmentRecord,
    ConversationRecord,
    SearchHighlight,
    SearchResult,
    SearchResultMetadata,
    TranscriptRecord,
    composite_id,
)

COMMITMENT_TITLE_CHARS = 50


def clamp_relevance(value: float) -> float:
    return max(0.0, min(1.0, value))


def truncate(text: str, length: int) -> str:
    return text[:length] + ("..." if len(text) > length else "")


def generate_highlights(text: str, terms: Iterable[str]) -> List[SearchHighlight]:
    """Every case-insensitive occurrence of every term, ordered by start index."""
    highlights: List[SearchHighlight] = []
    for term in terms:
        for start, end in find_occurrences(text, term):
            highlights.append(SearchHighlight(text=text[start:end], start_index=start, end_index=end))
    highlights.sort(key=lambda h: h.start_index)
    return highlights


def build_result(
    record,
    relevance_score: float,
    matched_terms: Sequence[str],
    highlights: Sequence[SearchHighlight],
    snippet_length: int = 200,
) -> SearchResult:
    """
    Renders a source record as a SearchResult. Every record kind is handled
    explicitly; an unknown kind raises TypeError.
    """
    doc_type = document_type_of(record)
    common = dict(
        id=composite_id(doc_type, record.id),
        type=doc_type,
        relevance_score=clamp_relevance(relevance_score),
        matched_terms=list(matched_terms),
        highlights=list(highlights),
    )

    if isinstance(record, ConversationRecord):
        return SearchResult(
            title=record.contact_name or "Unknown Contact",
            description=f"Call from {record.start_time:%Y-%m-%d} • {record.duration // 60}m",
            content_snippet=truncate(record.transcript, snippet_length),
            metadata=SearchResultMetadata(
                contact_id=record.contact_id,
                conversation_id=record.id,
                date=record.start_time,
                duration=record.duration,
                emotional_tone=record.emotional_tone,
            ),
            **common,
        )

    if isinstance(record, CommitmentRecord):
        who = "You" if record.who_committed == "user" else "Contact"
        description = f"{record.status.upper()} • {record.priority.upper()} • {who}"
        if record.due_date:
            description += f" • Due: {record.due_date:%Y-%m-%d}"
        return SearchResult(
            title=truncate(record.text, COMMITMENT_TITLE_CHARS),
            description=description,
            content_snippet=record.text,
            metadata=SearchResultMetadata(
                contact_id=record.contact_id,
                conversation_id=record.conversation_id,
                date=record.created_at,
                category=record.category or None,
                status=record.status,
            ),
            **common,
        )

    if isinstance(record, AnalysisRecord):
        return SearchResult(
            title="Conversation Insight",
            description=f"Analysis from {record.analyzed_at:%Y-%m-%d}",
            content_snippet=", ".join(record.key_topics),
            metadata=SearchResultMetadata(
                contact_id=record.contact_id,
                conversation_id=record.conversation_id,
                date=record.analyzed_at,
                duration=record.duration,
                emotional_tone=record.overall_tone,
            ),
            **common,
        )

    if isinstance(record, TranscriptRecord):
        return SearchResult(
            title=f"Transcript {record.id}",
            description=f"Transcription from {record.created_at:%Y-%m-%d}",
            content_snippet=truncate(record.transcript, snippet_length),
            metadata=SearchResultMetadata(
                conversation_id=record.conversation_id or record.id,
                date=record.created_at,
                duration=record.duration,
            ),
            **common,
        )

    raise TypeError(f"Unsupported source record type: {type(record).__name__}")
