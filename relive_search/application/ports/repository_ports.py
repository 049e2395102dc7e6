# relive_search/application/ports/repository_ports.py
import abc
from datetime import datetime
from typing import List, Optional, Sequence

from relive_search.domain.models import (
    CommitmentRecord,
    ConversationRecord,
    DocumentType,
    StructuredSearchHit,
)


class ConversationStorePort(abc.ABC):
    """
    Abstract port over the persistent relational store that owns conversations,
    commitments and the generic key/value settings table.
    """

    @abc.abstractmethod
    async def get_conversations(self, limit: int = 50, offset: int = 0) -> List[ConversationRecord]:
        """
        Returns conversations ordered by start time, newest first.

        Raises:
            ConnectionError: If the store cannot be reached.
            StoreQueryError: For any other failure while querying.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def get_commitments(
        self,
        status: Optional[str] = None,
        contact_id: Optional[str] = None,
        due_before: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[CommitmentRecord]:
        """Returns commitments ordered by due date (earliest first), optionally filtered."""
        raise NotImplementedError

    @abc.abstractmethod
    async def search_conversations(self, text: str, limit: int = 20) -> List[ConversationRecord]:
        """
        Returns conversations whose contact name, phone number or transcript contains
        `text` (case-insensitive), newest first.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def advanced_search(
        self,
        text: str,
        types: Sequence[DocumentType],
        limit: int = 50,
        min_relevance: float = 1,
    ) -> List[StructuredSearchHit]:
        """
        Relevance-scored search over conversations and commitments, executed on the
        store's own query facilities.

        Args:
            text: Raw query text. Matching is a case-insensitive substring test.
            types: Which of CONVERSATION / COMMITMENT to search. Other types are ignored.
            limit: Overall cap. Each type is capped to ceil(limit / len(types)).
            min_relevance: Raw relevance floor; lower-scoring hits are dropped.

        Returns:
            Hits sorted by raw relevance, highest first, at most `limit` of them.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def get_setting(self, key: str) -> Optional[str]:
        """Reads one value from the settings table; None if the key is absent."""
        raise NotImplementedError

    @abc.abstractmethod
    async def set_setting(self, key: str, value: str) -> None:
        """Inserts or replaces one value in the settings table."""
        raise NotImplementedError

    @abc.abstractmethod
    async def delete_setting(self, key: str) -> None:
        raise NotImplementedError
