# relive_search/domain/relevance.py
"""
Heuristic relevance rules for the structured (store-side) search.

Both store adapters score candidate rows with these functions so that Postgres
and the in-memory store rank identically. `term` is always the lowercased,
stripped query text; callers never pass an empty term.
"""
from datetime import datetime
from typing import Optional

from relive_search.domain.models import (
    CommitmentRecord,
    ConversationRecord,
    DocumentType,
    StructuredSearchHit,
)

CONTACT_NAME_MATCH_POINTS = 10
PHONE_MATCH_POINTS = 8
TRANSCRIPT_OCCURRENCE_POINTS = 2
RECENT_WEEK_POINTS = 3
RECENT_MONTH_POINTS = 1

COMMITMENT_TEXT_OCCURRENCE_POINTS = 5
CATEGORY_MATCH_POINTS = 3
PRIORITY_POINTS = {"high": 4, "medium": 2}
STATUS_POINTS = {"pending": 3, "overdue": 5}

CONVERSATION_SNIPPET_CHARS = 100
COMMITMENT_TITLE_CHARS = 50


def conversation_matches(conversation: ConversationRecord, term: str) -> bool:
    return (
        term in (conversation.contact_name or "").lower()
        or term in (conversation.phone_number or "").lower()
        or term in conversation.transcript.lower()
    )


def commitment_matches(commitment: CommitmentRecord, term: str) -> bool:
    return term in commitment.text.lower() or term in commitment.category.lower()


def score_conversation(conversation: ConversationRecord, term: str, now: datetime) -> float:
    relevance = 0
    if term in (conversation.contact_name or "").lower():
        relevance += CONTACT_NAME_MATCH_POINTS
    if term in (conversation.phone_number or "").lower():
        relevance += PHONE_MATCH_POINTS

    relevance += conversation.transcript.lower().count(term) * TRANSCRIPT_OCCURRENCE_POINTS

    days_since = (now - conversation.start_time).total_seconds() / 86400
    if days_since < 7:
        relevance += RECENT_WEEK_POINTS
    elif days_since < 30:
        relevance += RECENT_MONTH_POINTS
    return float(relevance)


def score_commitment(commitment: CommitmentRecord, term: str) -> float:
    relevance = commitment.text.lower().count(term) * COMMITMENT_TEXT_OCCURRENCE_POINTS
    if term in commitment.category.lower():
        relevance += CATEGORY_MATCH_POINTS
    relevance += PRIORITY_POINTS.get(commitment.priority, 0)
    relevance += STATUS_POINTS.get(commitment.status, 0)
    return float(relevance)


def conversation_hit(
    conversation: ConversationRecord, term: str, now: datetime, min_relevance: float
) -> Optional[StructuredSearchHit]:
    """Scores a candidate conversation; None when it is not a match or falls under the floor."""
    if not conversation_matches(conversation, term):
        return None
    relevance = score_conversation(conversation, term, now)
    if relevance < min_relevance:
        return None

    transcript = conversation.transcript
    snippet = transcript[:CONVERSATION_SNIPPET_CHARS]
    if len(transcript) > CONVERSATION_SNIPPET_CHARS:
        snippet += "..."
    return StructuredSearchHit(
        type=DocumentType.CONVERSATION,
        id=conversation.id,
        title=conversation.contact_name or "Unknown Contact",
        snippet=snippet,
        relevance=relevance,
        data=conversation,
    )


def commitment_hit(
    commitment: CommitmentRecord, term: str, min_relevance: float
) -> Optional[StructuredSearchHit]:
    if not commitment_matches(commitment, term):
        return None
    relevance = score_commitment(commitment, term)
    if relevance < min_relevance:
        return None

    title = commitment.text[:COMMITMENT_TITLE_CHARS]
    if len(commitment.text) > COMMITMENT_TITLE_CHARS:
        title += "..."
    who = "You" if commitment.who_committed == "user" else "Contact"
    return StructuredSearchHit(
        type=DocumentType.COMMITMENT,
        id=commitment.id,
        title=title,
        snippet=f"{commitment.status.upper()} • {commitment.priority.upper()} • {who}",
        relevance=relevance,
        data=commitment,
    )
