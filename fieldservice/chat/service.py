from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from fieldservice.core.clock import BusinessClock
from fieldservice.errors import ChatSessionNotFoundError
from fieldservice.service_requests.models import Customer
from fieldservice.service_requests.repository import ServiceRequestRepository
from fieldservice.validation import clean, require_fields, split_name

from .models import AI_SENDER, CUSTOMER_SENDER, ChatMessage, ChatSession, ChatSessionStart, ChatTranscript
from .repository import ChatRepository
from .responder import KeywordResponder, Responder

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChatService:
    """Session-indexed conversational capture in front of the customer store."""

    repository: ChatRepository
    customers: ServiceRequestRepository
    responder: Responder = field(default_factory=KeywordResponder)
    clock: BusinessClock = field(default_factory=BusinessClock)

    async def start_session(self, *, name: str | None, phone: str | None, email: str | None = None) -> ChatSessionStart:
        required = require_fields(name=name, phone=phone)
        first_name, last_name = split_name(required["name"])
        customer = await self.customers.upsert_customer(
            Customer(
                id=str(uuid.uuid4()),
                first_name=first_name,
                last_name=last_name,
                phone=required["phone"],
                email=clean(email),
            )
        )

        session = ChatSession(id=str(uuid.uuid4()), customer_id=customer.id, started_at=self.clock.now())
        await self.repository.create_session(session)
        logger.info("Chat session %s started for customer %s", session.id, customer.id)
        return ChatSessionStart(
            session_id=session.id,
            customer_id=customer.id,
            greeting=f"Hi {first_name}! 👋 How can I help you today?",
        )

    async def post_message(self, session_id: str, message: str | None, sender: str | None = None) -> str:
        text = require_fields(message=message)["message"]
        session = await self.repository.get_session(session_id)
        if session is None:
            raise ChatSessionNotFoundError(f"Chat session {session_id} not found")

        await self._append(session.id, clean(sender) or CUSTOMER_SENDER, text)
        reply = await self.responder.respond(text)
        await self._append(session.id, AI_SENDER, reply)
        return reply

    async def get_history(self, session_id: str) -> ChatTranscript:
        transcript = await self.repository.get_transcript(session_id)
        if transcript is None:
            raise ChatSessionNotFoundError(f"Chat session {session_id} not found")
        return transcript

    async def _append(self, session_id: str, sender: str, text: str) -> None:
        await self.repository.add_message(
            ChatMessage(
                id=str(uuid.uuid4()),
                session_id=session_id,
                sender=sender,
                message=text,
                created_at=self.clock.now(),
            )
        )
