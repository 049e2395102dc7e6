# relive_search/application/services/document_collector.py
import asyncio
import structlog
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from relive_search.application.ports import (
    AnalysisSourcePort,
    ConversationStorePort,
    TranscriptSourcePort,
)
from relive_search.domain.models import (
    AnalysisRecord,
    CommitmentRecord,
    ConversationRecord,
    DocumentType,
    SearchableDocument,
    TranscriptRecord,
    composite_id,
)

log = structlog.get_logger(__name__)


def _join(parts: Sequence[Optional[str]]) -> str:
    return " ".join(p or "" for p in parts)


def document_type_of(record) -> DocumentType:
    if isinstance(record, ConversationRecord):
        return DocumentType.CONVERSATION
    if isinstance(record, CommitmentRecord):
        return DocumentType.COMMITMENT
    if isinstance(record, AnalysisRecord):
        return DocumentType.INSIGHT
    if isinstance(record, TranscriptRecord):
        return DocumentType.TRANSCRIPT
    raise TypeError(f"Unsupported source record type: {type(record).__name__}")


def composite_text(record) -> str:
    """The searchable text of a source record: its salient attributes joined by spaces."""
    if isinstance(record, ConversationRecord):
        return _join([record.transcript, record.contact_name, record.phone_number, record.emotional_tone])
    if isinstance(record, CommitmentRecord):
        return _join([record.text, record.category, record.priority, record.status, record.who_committed])
    if isinstance(record, AnalysisRecord):
        return _join([
            record.transcript,
            " ".join(record.key_topics),
            " ".join(record.action_items),
            " ".join(record.follow_up_suggestions),
        ])
    if isinstance(record, TranscriptRecord):
        return _join([record.transcript, record.language])
    raise TypeError(f"Unsupported source record type: {type(record).__name__}")


def build_document(record) -> SearchableDocument:
    doc_type = document_type_of(record)
    return SearchableDocument(
        doc_id=composite_id(doc_type, record.id),
        doc_type=doc_type,
        source_record_id=record.id,
        composite_text=composite_text(record),
        source=record,
    )


@dataclass
class CollectionOutcome:
    documents: List[SearchableDocument] = field(default_factory=list)
    failed_sources: List[str] = field(default_factory=list)


class DocumentCollector:
    """
    Pulls bounded batches of source records from the store and the in-memory
    caches and turns each one into a SearchableDocument.

    A source that fails is logged and contributes no documents; the other
    sources are unaffected.
    """

    def __init__(
        self,
        store: ConversationStorePort,
        analysis_source: Optional[AnalysisSourcePort] = None,
        transcript_source: Optional[TranscriptSourcePort] = None,
        conversation_limit: int = 1000,
        commitment_limit: int = 1000,
    ):
        self.store = store
        self.analysis_source = analysis_source
        self.transcript_source = transcript_source
        self.conversation_limit = conversation_limit
        self.commitment_limit = commitment_limit

    async def collect(self) -> CollectionOutcome:
        collect_log = log.bind(action="collect_documents")
        sources = {
            DocumentType.CONVERSATION.value: self._collect_conversations(),
            DocumentType.COMMITMENT.value: self._collect_commitments(),
            DocumentType.INSIGHT.value: self._collect_analyses(),
            DocumentType.TRANSCRIPT.value: self._collect_transcripts(),
        }
        results = await asyncio.gather(*sources.values(), return_exceptions=True)

        outcome = CollectionOutcome()
        for source_name, result in zip(sources.keys(), results):
            if isinstance(result, Exception):
                collect_log.error(
                    "Failed to collect source records. Source contributes no documents.",
                    source=source_name,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                outcome.failed_sources.append(source_name)
                continue
            collect_log.info(f"Collected {len(result)} {source_name} documents.", source=source_name)
            outcome.documents.extend(result)

        return outcome

    async def _collect_conversations(self) -> List[SearchableDocument]:
        conversations = await self.store.get_conversations(limit=self.conversation_limit)
        return [build_document(c) for c in conversations]

    async def _collect_commitments(self) -> List[SearchableDocument]:
        commitments = await self.store.get_commitments(limit=self.commitment_limit)
        return [build_document(c) for c in commitments]

    async def _collect_analyses(self) -> List[SearchableDocument]:
        if self.analysis_source is None:
            return []
        analyses = await self.analysis_source.get_analyses()
        return [build_document(a) for a in analyses]

    async def _collect_transcripts(self) -> List[SearchableDocument]:
        if self.transcript_source is None:
            return []
        sessions = await self.transcript_source.get_transcription_sessions()
        return [build_document(s) for s in sessions if s.status == "completed"]
