# relive_search/infrastructure/persistence/postgres_repositories.py
import math
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

import asyncpg
import structlog

from relive_search.application.ports.repository_ports import ConversationStorePort
from relive_search.domain.exceptions import StoreQueryError
from relive_search.domain.models import (
    CommitmentRecord,
    ConversationRecord,
    DocumentType,
    StructuredSearchHit,
)
from relive_search.domain.relevance import commitment_hit, conversation_hit
from .postgres_connector import get_db_pool

log = structlog.get_logger(__name__)

_CONVERSATION_COLUMNS = """
    id, contact_id, contact_name, phone_number, start_time, end_time,
    duration, COALESCE(transcript, '') AS transcript,
    COALESCE(emotional_tone, 'neutral') AS emotional_tone, created_at
"""

_COMMITMENT_COLUMNS = """
    id, conversation_id, contact_id, text, who_committed, due_date,
    priority, COALESCE(category, '') AS category, status, confidence, created_at
"""

# strpos() instead of ILIKE so that '%' and '_' in the query text are matched literally.
_CONVERSATION_TEXT_MATCH = """
    (strpos(lower(COALESCE(contact_name, '')), lower($1)) > 0
     OR strpos(lower(COALESCE(phone_number, '')), lower($1)) > 0
     OR strpos(lower(COALESCE(transcript, '')), lower($1)) > 0)
"""


def _conversation_from_row(row: asyncpg.Record) -> ConversationRecord:
    return ConversationRecord(**dict(row))


def _commitment_from_row(row: asyncpg.Record) -> CommitmentRecord:
    return CommitmentRecord(**dict(row))


class PostgresConversationStore(ConversationStorePort):
    """
    Concrete store over the `conversations`, `commitments` and `settings` tables.
    """

    async def _fetch(self, action: str, query: str, *args: Any) -> List[asyncpg.Record]:
        repo_log = log.bind(repo="PostgresConversationStore", action=action)
        pool = await get_db_pool()
        conn = None
        try:
            conn = await pool.acquire()
            rows = await conn.fetch(query, *args)
            repo_log.debug(f"Query returned {len(rows)} rows.")
            return rows
        except asyncpg.exceptions.PostgresConnectionError as db_conn_err:
            repo_log.error("Database connection error.", error_details=str(db_conn_err), exc_info=False)
            raise ConnectionError(f"Database connection error: {db_conn_err}") from db_conn_err
        except Exception as e:
            repo_log.exception("Store query failed.")
            raise StoreQueryError(f"Failed to run {action}: {e}") from e
        finally:
            if conn:
                await pool.release(conn)

    async def _execute(self, action: str, query: str, *args: Any) -> None:
        repo_log = log.bind(repo="PostgresConversationStore", action=action)
        pool = await get_db_pool()
        conn = None
        try:
            conn = await pool.acquire()
            status = await conn.execute(query, *args)
            repo_log.debug("Statement executed.", status=status)
        except asyncpg.exceptions.PostgresConnectionError as db_conn_err:
            repo_log.error("Database connection error.", error_details=str(db_conn_err), exc_info=False)
            raise ConnectionError(f"Database connection error: {db_conn_err}") from db_conn_err
        except Exception as e:
            repo_log.exception("Store statement failed.")
            raise StoreQueryError(f"Failed to run {action}: {e}") from e
        finally:
            if conn:
                await pool.release(conn)

    async def get_conversations(self, limit: int = 50, offset: int = 0) -> List[ConversationRecord]:
        query = f"""
        SELECT {_CONVERSATION_COLUMNS}
        FROM conversations
        ORDER BY start_time DESC
        LIMIT $1 OFFSET $2;
        """
        rows = await self._fetch("get_conversations", query, limit, offset)
        return [_conversation_from_row(row) for row in rows]

    async def get_commitments(
        self,
        status: Optional[str] = None,
        contact_id: Optional[str] = None,
        due_before: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[CommitmentRecord]:
        conditions: List[str] = []
        args: List[Any] = []
        if status is not None:
            args.append(status)
            conditions.append(f"status = ${len(args)}")
        if contact_id is not None:
            args.append(contact_id)
            conditions.append(f"contact_id = ${len(args)}")
        if due_before is not None:
            args.append(due_before)
            conditions.append(f"due_date <= ${len(args)}")

        query = f"SELECT {_COMMITMENT_COLUMNS} FROM commitments"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY due_date ASC NULLS LAST"
        if limit is not None:
            args.append(limit)
            query += f" LIMIT ${len(args)}"

        rows = await self._fetch("get_commitments", query, *args)
        return [_commitment_from_row(row) for row in rows]

    async def search_conversations(self, text: str, limit: int = 20) -> List[ConversationRecord]:
        query = f"""
        SELECT {_CONVERSATION_COLUMNS}
        FROM conversations
        WHERE {_CONVERSATION_TEXT_MATCH}
        ORDER BY start_time DESC
        LIMIT $2;
        """
        rows = await self._fetch("search_conversations", query, text, limit)
        return [_conversation_from_row(row) for row in rows]

    async def _search_commitments(self, text: str, limit: int) -> List[CommitmentRecord]:
        query = f"""
        SELECT {_COMMITMENT_COLUMNS}
        FROM commitments
        WHERE strpos(lower(text), lower($1)) > 0
           OR strpos(lower(COALESCE(category, '')), lower($1)) > 0
        ORDER BY due_date ASC NULLS LAST
        LIMIT $2;
        """
        rows = await self._fetch("search_commitments", query, text, limit)
        return [_commitment_from_row(row) for row in rows]

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

        repo_log = log.bind(repo="PostgresConversationStore", action="advanced_search", types=[t.value for t in wanted])
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
        repo_log.info(f"Advanced search scored {len(hits)} hits.", per_type_limit=per_type_limit)
        return hits[:limit]

    async def get_setting(self, key: str) -> Optional[str]:
        rows = await self._fetch("get_setting", "SELECT value FROM settings WHERE key = $1;", key)
        return rows[0]["value"] if rows else None

    async def set_setting(self, key: str, value: str) -> None:
        query = """
        INSERT INTO settings (key, value, updated_at)
        VALUES ($1, $2, now())
        ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = EXCLUDED.updated_at;
        """
        await self._execute("set_setting", query, key, value)

    async def delete_setting(self, key: str) -> None:
        await self._execute("delete_setting", "DELETE FROM settings WHERE key = $1;", key)
