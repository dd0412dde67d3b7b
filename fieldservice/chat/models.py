from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

AI_SENDER = "ai"
CUSTOMER_SENDER = "customer"


@dataclass(slots=True)
class ChatSession:
    id: str
    customer_id: str
    started_at: datetime


@dataclass(slots=True)
class ChatMessage:
    """Single transcript entry. Transcripts are append-only."""

    id: str
    session_id: str
    sender: str
    message: str
    created_at: datetime


@dataclass(slots=True)
class ChatTranscript:
    session: ChatSession
    messages: Sequence[ChatMessage]


@dataclass(slots=True)
class ChatSessionStart:
    session_id: str
    customer_id: str
    greeting: str
