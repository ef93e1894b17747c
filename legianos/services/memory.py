"""
Conversation memory: per-thread message history used as extraction context.

SQLConversationStore (SQLite via aiosqlite) is the default.
SupabaseConversationStore is used when Supabase credentials are configured.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from postgrest.exceptions import APIError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from supabase import Client, create_client

from legianos.config import settings
from legianos.db import async_session
from legianos.errors import CollaboratorError
from legianos.models import ConversationMessage, utcnow

logger = logging.getLogger("legianos")

MESSAGES_TABLE = "conversation_messages"


@dataclass
class ConversationTurn:
    role: str  # user | assistant
    content: str
    created_at: Optional[datetime] = None


@dataclass
class ThreadInfo:
    thread_id: str
    last_message_at: Optional[datetime] = None


class ConversationStore(ABC):
    """Thread-scoped message log keyed by (thread_id, user_id)."""

    @abstractmethod
    async def append_message(self, thread_id: str, user_id: str, role: str, content: str) -> None:
        ...

    @abstractmethod
    async def fetch_history(self, thread_id: str, user_id: str, limit: Optional[int] = None) -> List[ConversationTurn]:
        """Most recent `limit` turns, oldest first."""
        ...

    @abstractmethod
    async def list_threads(self, user_id: str) -> List[ThreadInfo]:
        """Threads for a user, most recently active first."""
        ...


class SQLConversationStore(ConversationStore):

    def __init__(self, session_factory=async_session):
        self.session_factory = session_factory

    async def append_message(self, thread_id: str, user_id: str, role: str, content: str) -> None:
        try:
            async with self.session_factory() as session:
                session.add(ConversationMessage(
                    thread_id=thread_id,
                    user_id=user_id,
                    role=role,
                    content=content,
                    created_at=utcnow(),
                ))
                await session.commit()
        except SQLAlchemyError as e:
            raise CollaboratorError(f"Failed to store message: {e}") from e

    async def fetch_history(self, thread_id: str, user_id: str, limit: Optional[int] = None) -> List[ConversationTurn]:
        limit = limit or settings.history_limit
        stmt = (
            select(ConversationMessage)
            .where(ConversationMessage.thread_id == thread_id)
            .where(ConversationMessage.user_id == user_id)
            .order_by(ConversationMessage.created_at.desc(), ConversationMessage.id.desc())
            .limit(limit)
        )
        try:
            async with self.session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise CollaboratorError(f"Failed to load history: {e}") from e

        return [
            ConversationTurn(role=row.role, content=row.content, created_at=row.created_at)
            for row in reversed(rows)
        ]

    async def list_threads(self, user_id: str) -> List[ThreadInfo]:
        last_at = func.max(ConversationMessage.created_at)
        stmt = (
            select(ConversationMessage.thread_id, last_at)
            .where(ConversationMessage.user_id == user_id)
            .group_by(ConversationMessage.thread_id)
            .order_by(last_at.desc())
        )
        try:
            async with self.session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise CollaboratorError(f"Failed to list threads: {e}") from e

        return [ThreadInfo(thread_id=thread_id, last_message_at=last) for thread_id, last in rows]


class SupabaseConversationStore(ConversationStore):
    """Same contract, backed by the `conversation_messages` table in Supabase."""

    def __init__(self, client: Optional[Client] = None):
        self.client = client

    def _connect(self) -> Client:
        if self.client is None:
            key = settings.supabase_service_key or settings.supabase_anon_key
            if not settings.supabase_url or not key:
                raise CollaboratorError(
                    "Supabase is not configured",
                    hint="Set SUPABASE_URL and SUPABASE_SERVICE_KEY (or SUPABASE_ANON_KEY).",
                )
            self.client = create_client(settings.supabase_url, key)
        return self.client

    async def append_message(self, thread_id: str, user_id: str, role: str, content: str) -> None:
        client = self._connect()
        try:
            client.table(MESSAGES_TABLE).insert({
                "thread_id": thread_id,
                "user_id": user_id,
                "role": role,
                "content": content,
                "created_at": utcnow().isoformat(),
            }).execute()
        except APIError as e:
            raise CollaboratorError(f"Failed to store message: {e}") from e

    async def fetch_history(self, thread_id: str, user_id: str, limit: Optional[int] = None) -> List[ConversationTurn]:
        client = self._connect()
        query = client.table(MESSAGES_TABLE).select("role,content,created_at")
        query = query.eq("thread_id", thread_id).eq("user_id", user_id)
        query = query.order("created_at", desc=True).limit(limit or settings.history_limit)
        try:
            result = query.execute()
        except APIError as e:
            raise CollaboratorError(f"Failed to load history: {e}") from e

        return [
            ConversationTurn(role=row["role"], content=row["content"], created_at=row.get("created_at"))
            for row in reversed(result.data)
        ]

    async def list_threads(self, user_id: str) -> List[ThreadInfo]:
        client = self._connect()
        query = client.table(MESSAGES_TABLE).select("thread_id,created_at")
        query = query.eq("user_id", user_id).order("created_at", desc=True)
        try:
            result = query.execute()
        except APIError as e:
            raise CollaboratorError(f"Failed to list threads: {e}") from e

        threads = {}
        for row in result.data:
            threads.setdefault(row["thread_id"], row.get("created_at"))
        return [ThreadInfo(thread_id=t, last_message_at=at) for t, at in threads.items()]


_store: Optional[ConversationStore] = None


def get_conversation_store() -> ConversationStore:
    """Process-wide store; Supabase when configured, SQLite otherwise."""
    global _store
    if _store is None:
        if settings.supabase_url and (settings.supabase_service_key or settings.supabase_anon_key):
            _store = SupabaseConversationStore()
            logger.info("conversation_store_selected", extra={"backend": "supabase"})
        else:
            _store = SQLConversationStore()
            logger.info("conversation_store_selected", extra={"backend": "sqlite"})
    return _store
