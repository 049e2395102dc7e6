# relive_search/infrastructure/persistence/memory_repositories.py
import math
import structlog
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from relive_search.application.ports.repository_ports import ConversationStorePort
from relive_search.domain.models import (
    CommitmentRecord,
    ConversationRecord,
    DocumentType,
    StructuredSearchHit,
)
from relive_search.domain.relevance import commitment_hit, conversation_hit

log = structlog.get_logger(__name__)

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


class InMemoryConversationStore(ConversationStorePort):
    """
    Dict-backed store with the same query semantics as the Postgres store.
    Used for local runs and tests.
    """

    def __init__(
        self,
        conversations: Iterable[ConversationRecord] = (),
        commitments: Iterable[CommitmentRecord] = (),
        settings: Optional[Dict[str, str]] = None,
    ):
        self.conversations: Dict[str, ConversationRecord] = {c.id: c for c in conversations}
        self.commitments: Dict[str, CommitmentRecord] = {c.id: c for c in commitments}
        self.settings: Dict[str, str] = dict(settings or {})

    def add_conversation(self, conversation: ConversationRecord) -> None:
        self.conversations[conversation.id] = conversation

    def add_commitment(self, commitment: CommitmentRecord) -> None:
        self.commitments[commitment.id] = commitment

    async def get_conversations(self, limit: int = 50, offset: int = 0) -> List[ConversationRecord]:
        ordered = sorted(self.conversations.values(), key=lambda c: c.start_time, reverse=True)
        return ordered[offset:offset + limit]

    async def get_commitments(
        self,
        status: Optional[str] = None,
        contact_id: Optional[str] = None,
        due_before: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[CommitmentRecord]:
        selected = [
            c for c in self.commitments.values()
            if (status is None or c.status == status)
            and (contact_id is None or c.contact_id == contact_id)
            and (due_before is None or (c.due_date is not None and c.due_date <= due_before))
        ]
        # Undated commitments sort last, like NULLs in an ascending SQL order.
        selected.sort(key=lambda c: c.due_date or _FAR_FUTURE)
        return selected[:limit] if limit is not None else selected

    async def search_conversations(self, text: str, limit: int = 20) -> List[ConversationRecord]:
        term = text.lower()
        matches = [
            c for c in self.conversations.values()
            if term in (c.contact_name or "").lower()
            or term in (c.phone_number or "").lower()
            or term in c.transcript.lower()
        ]
        matches.sort(key=lambda c: c.start_time, reverse=True)
        return matches[:limit]

    async def _search_commitments(self, text: str, limit: int) -> List[CommitmentRecord]:
        term = text.lower()
        matches = [
            c for c in self.commitments.values()
            if term in c.text.lower() or term in c.category.lower()
        ]
        matches.sort(key=lambda c: c.due_date or _FAR_FUTURE)
        return matches[:limit]

    async def advanced_search(
        self,
        text: str,
        types: Sequence[DocumentType],
        limit: int = 50,
        min_relevance: float = 1,
    ) -> List[StructuredSearchHit]:
        term = text.strip().lower()
        wanted = [t for t in types if t in (DocumentType.CONVERSATION, DocumentType.COMMITMENT)]
        if not term or not wanted:
            return []

        per_type_limit = math.ceil(limit / len(wanted))
        now = datetime.now(timezone.utc)
        hits: List[StructuredSearchHit] = []

        if DocumentType.CONVERSATION in wanted:
            for conversation in await self.search_conversations(term, per_type_limit):
                hit = conversation_hit(conversation, term, now, min_relevance)
                if hit:
                    hits.append(hit)

        if DocumentType.COMMITMENT in wanted:
            for commitment in await self._search_commitments(term, per_type_limit):
                hit = commitment_hit(commitment, term, min_relevance)
                if hit:
                    hits.append(hit)

        hits.sort(key=lambda h: h.relevance, reverse=True)
        log.debug(
            f"Advanced search scored {len(hits)} hits.",
            store="InMemoryConversationStore",
            per_type_limit=per_type_limit,
        )
        return hits[:limit]

    async def get_setting(self, key: str) -> Optional[str]:
        return self.settings.get(key)

    async def set_setting(self, key: str, value: str) -> None:
        self.settings[key] = value

    async def delete_setting(self, key: str) -> None:
        self.settings.pop(key, None)
