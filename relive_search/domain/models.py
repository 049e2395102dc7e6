# relive_search/domain/models.py
import uuid
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, AfterValidator
from typing import Annotated, Optional, List, Dict, Literal, Union


def _as_utc(value: datetime) -> datetime:
    # Store records may come back naive; everything downstream compares aware datetimes.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class DocumentType(str, Enum):
    CONVERSATION = "conversation"
    COMMITMENT = "commitment"
    INSIGHT = "insight"
    TRANSCRIPT = "transcript"


# Types answered by the structured store search; the in-memory index is the only source for the rest.
STRUCTURED_TYPES = (DocumentType.CONVERSATION, DocumentType.COMMITMENT)


def composite_id(doc_type: DocumentType, record_id: str) -> str:
    """Type-prefixed id shared by the index and the structured search path."""
    return f"{doc_type.value}_{record_id}"


# --- Source records (as served by the store and the in-memory caches) ---

class ConversationRecord(BaseModel):
    kind: Literal["conversation"] = "conversation"
    id: str
    contact_id: str
    contact_name: Optional[str] = None
    phone_number: Optional[str] = None
    start_time: UtcDatetime
    end_time: Optional[UtcDatetime] = None
    duration: int = 0  # seconds
    transcript: str = ""
    emotional_tone: str = "neutral"
    created_at: Optional[UtcDatetime] = None


class CommitmentRecord(BaseModel):
    kind: Literal["commitment"] = "commitment"
    id: str
    conversation_id: Optional[str] = None
    contact_id: Optional[str] = None
    text: str
    who_committed: Literal["user", "contact"] = "user"
    due_date: Optional[UtcDatetime] = None
    priority: Literal["low", "medium", "high"] = "medium"
    category: str = ""
    status: Literal["pending", "completed", "overdue", "cancelled"] = "pending"
    confidence: float = 1.0
    created_at: UtcDatetime


class AnalysisRecord(BaseModel):
    """AI analysis of one conversation, as kept by the analysis cache."""
    kind: Literal["insight"] = "insight"
    id: str
    conversation_id: str
    contact_id: Optional[str] = None
    transcript: str = ""
    key_topics: List[str] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)
    follow_up_suggestions: List[str] = Field(default_factory=list)
    overall_tone: Optional[str] = None
    analyzed_at: UtcDatetime
    duration: int = 0


class TranscriptRecord(BaseModel):
    """A transcription session; only completed sessions are searchable."""
    kind: Literal["transcript"] = "transcript"
    id: str
    conversation_id: Optional[str] = None
    transcript: str = ""
    status: Literal["pending", "processing", "completed", "failed"] = "completed"
    language: str = "en"
    created_at: UtcDatetime
    completed_at: Optional[UtcDatetime] = None
    duration: int = 0


SourceRecord = Annotated[
    Union[ConversationRecord, CommitmentRecord, AnalysisRecord, TranscriptRecord],
    Field(discriminator="kind"),
]

StructuredRecord = Annotated[
    Union[ConversationRecord, CommitmentRecord],
    Field(discriminator="kind"),
]


class SearchableDocument(BaseModel):
    """One indexed source record. Derived, never persisted."""
    model_config = ConfigDict(frozen=True)

    doc_id: str
    doc_type: DocumentType
    source_record_id: str
    composite_text: str
    source: SourceRecord


class StructuredSearchHit(BaseModel):
    """Raw hit returned by the store's advanced search primitive."""
    type: DocumentType
    id: str
    title: str
    snippet: str
    relevance: float
    data: StructuredRecord


# --- Results ---

class SearchHighlight(BaseModel):
    field: str = "content"
    text: str
    start_index: int
    end_index: int


class SearchResultMetadata(BaseModel):
    contact_id: Optional[str] = None
    conversation_id: Optional[str] = None
    date: UtcDatetime
    duration: Optional[int] = None
    category: Optional[str] = None
    status: Optional[str] = None
    emotional_tone: Optional[str] = None


class SearchResult(BaseModel):
    id: str
    type: DocumentType
    title: str
    description: str
    content_snippet: str
    relevance_score: float = Field(..., ge=0.0, le=1.0)
    matched_terms: List[str] = Field(default_factory=list)
    metadata: SearchResultMetadata
    highlights: List[SearchHighlight] = Field(default_factory=list)


# --- Queries ---

class DateRange(BaseModel):
    start: UtcDatetime
    end: UtcDatetime


class SearchFilters(BaseModel):
    types: Optional[List[DocumentType]] = None
    contact_ids: Optional[List[str]] = None
    date_range: Optional[DateRange] = None
    categories: Optional[List[str]] = None
    commitment_statuses: Optional[List[str]] = None
    emotional_tones: Optional[List[str]] = None
    min_relevance_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class SearchOptions(BaseModel):
    max_results: int = Field(default=50, gt=0)
    include_highlights: bool = False
    sort_by: Literal["relevance", "date", "title"] = "relevance"
    sort_order: Literal["asc", "desc"] = "desc"
    fuzzy_matching: bool = False
    case_sensitive: bool = False


class SearchQuery(BaseModel):
    text: str
    filters: Optional[SearchFilters] = None
    options: SearchOptions = Field(default_factory=SearchOptions)


# --- History and stats ---

class SearchHistoryEntry(BaseModel):
    id: str = Field(default_factory=lambda: f"search_{uuid.uuid4().hex[:12]}")
    query: str
    timestamp: UtcDatetime
    result_count: int
    execution_time_ms: float
    contact_ids: List[str] = Field(default_factory=list)
    degraded: bool = False


class SearchStats(BaseModel):
    total_searches: int
    average_execution_time_ms: float
    popular_queries: List[str]
    most_searched_contacts: List[str]
    documents_by_type: Dict[DocumentType, int]
    last_search_degraded: bool = False
    degraded_sources: List[str] = Field(default_factory=list)
    index_built_at: Optional[datetime] = None
    index_failed_sources: List[str] = Field(default_factory=list)
