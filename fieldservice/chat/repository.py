from __future__ import annotations

from typing import Any, Mapping

import asyncpg

from fieldservice.services.postgres import acquire, ensure_datetime

from .models import ChatMessage, ChatSession, ChatTranscript


class ChatRepository:
    """Persistence helper wrapping `chat_sessions` and `chat_messages`."""

    _CREATE_SESSIONS_SQL = """
    CREATE TABLE IF NOT EXISTS chat_sessions (
        id VARCHAR(36) PRIMARY KEY,
        customer_id VARCHAR(36) NOT NULL REFERENCES customers(id),
        started_at TIMESTAMPTZ NOT NULL
    )
    """

    _CREATE_MESSAGES_SQL = """
    CREATE TABLE IF NOT EXISTS chat_messages (
        position BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
        id VARCHAR(36) NOT NULL UNIQUE,
        session_id VARCHAR(36) NOT NULL REFERENCES chat_sessions(id) ON DELETE CASCADE,
        sender VARCHAR(50) NOT NULL,
        message TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL
    )
    """

    _INSERT_SESSION_SQL = """
    INSERT INTO chat_sessions (id, customer_id, started_at)
    VALUES ($1, $2, $3)
    """

    _SELECT_SESSION_SQL = """
    SELECT id, customer_id, started_at
    FROM chat_sessions
    WHERE id = $1
    """

    _INSERT_MESSAGE_SQL = """
    INSERT INTO chat_messages (id, session_id, sender, message, created_at)
    VALUES ($1, $2, $3, $4, $5)
    """

    _SELECT_MESSAGES_SQL = """
    SELECT id, session_id, sender, message, created_at
    FROM chat_messages
    WHERE session_id = $1
    ORDER BY position ASC
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with acquire(self._pool) as connection:
            await connection.execute(self._CREATE_SESSIONS_SQL)
            await connection.execute(self._CREATE_MESSAGES_SQL)

    async def create_session(self, session: ChatSession) -> None:
        async with acquire(self._pool) as connection:
            await connection.execute(self._INSERT_SESSION_SQL, session.id, session.customer_id, session.started_at)

    async def get_session(self, session_id: str) -> ChatSession | None:
        async with acquire(self._pool) as connection:
            row = await connection.fetchrow(self._SELECT_SESSION_SQL, session_id)
        return None if row is None else _row_to_session(row)

    async def add_message(self, message: ChatMessage) -> None:
        async with acquire(self._pool) as connection:
            await connection.execute(
                self._INSERT_MESSAGE_SQL,
                message.id,
                message.session_id,
                message.sender,
                message.message,
                message.created_at,
            )

    async def get_transcript(self, session_id: str) -> ChatTranscript | None:
        async with acquire(self._pool) as connection:
            session_row = await connection.fetchrow(self._SELECT_SESSION_SQL, session_id)
            if session_row is None:
                return None
            message_rows = await connection.fetch(self._SELECT_MESSAGES_SQL, session_id)
        return ChatTranscript(
            session=_row_to_session(session_row),
            messages=[_row_to_message(row) for row in message_rows],
        )


def _row_to_session(row: Mapping[str, Any]) -> ChatSession:
    return ChatSession(
        id=str(row["id"]),
        customer_id=str(row["customer_id"]),
        started_at=ensure_datetime(row["started_at"]),
    )


def _row_to_message(row: Mapping[str, Any]) -> ChatMessage:
    return ChatMessage(
        id=str(row["id"]),
        session_id=str(row["session_id"]),
        sender=str(row["sender"]),
        message=str(row["message"]),
        created_at=ensure_datetime(row["created_at"]),
    )

