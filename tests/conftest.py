"""Shared fixtures: record factories and an in-memory store seeded with a small call history."""

from datetime import datetime, timedelta, timezone

import pytest

from relive_search.domain.models import (
    AnalysisRecord,
    CommitmentRecord,
    ConversationRecord,
    TranscriptRecord,
)
from relive_search.infrastructure.persistence.memory_repositories import InMemoryConversationStore

NOW = datetime.now(timezone.utc)


def make_conversation(conversation_id="c1", **overrides) -> ConversationRecord:
    fields = dict(
        id=conversation_id,
        contact_id="contact-sarah",
        contact_name="Sarah Johnson",
        phone_number="555-0100",
        start_time=NOW - timedelta(days=1),
        duration=300,
        transcript="Let's confirm the dinner reservations Saturday at seven.",
        emotional_tone="positive",
        created_at=NOW - timedelta(days=1),
    )
    fields.update(overrides)
    return ConversationRecord(**fields)


def make_commitment(commitment_id="m1", **overrides) -> CommitmentRecord:
    fields = dict(
        id=commitment_id,
        conversation_id="c1",
        contact_id="contact-sarah",
        text="send book club list",
        who_committed="user",
        priority="medium",
        category="social",
        status="pending",
        created_at=NOW - timedelta(days=2),
    )
    fields.update(overrides)
    return CommitmentRecord(**fields)


def make_analysis(analysis_id="a1", **overrides) -> AnalysisRecord:
    fields = dict(
        id=analysis_id,
        conversation_id="c1",
        contact_id="contact-sarah",
        transcript="I made the reservation for Friday.",
        key_topics=["restaurant", "weekend plans"],
        action_items=["call the restaurant"],
        follow_up_suggestions=["ask about parking"],
        overall_tone="positive",
        analyzed_at=NOW - timedelta(hours=5),
        duration=240,
    )
    fields.update(overrides)
    return AnalysisRecord(**fields)


def make_transcript(transcript_id="t1", **overrides) -> TranscriptRecord:
    fields = dict(
        id=transcript_id,
        conversation_id="c2",
        transcript="Quarterly budget review with the finance team.",
        status="completed",
        created_at=NOW - timedelta(days=3),
        duration=600,
    )
    fields.update(overrides)
    return TranscriptRecord(**fields)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    """In-memory store with two conversations and two commitments."""
    return InMemoryConversationStore(
        conversations=[
            make_conversation("c1"),
            make_conversation(
                "c2",
                contact_id="contact-mike",
                contact_name="Mike Chen",
                phone_number="555-0199",
                start_time=NOW - timedelta(days=20),
                transcript="We talked about the quarterly budget and hiring plans.",
                emotional_tone="neutral",
            ),
        ],
        commitments=[
            make_commitment("m1", text="send book club list", status="overdue", priority="high"),
            make_commitment("m2", text="send book list", status="pending", priority="low", contact_id="contact-mike"),
        ],
    )
