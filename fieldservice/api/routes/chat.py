from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import AliasChoices, BaseModel, Field

from fieldservice.chat.models import ChatMessage, ChatTranscript
from fieldservice.dependencies.services import ChatServiceDep
from fieldservice.errors import DependencyFailure, NotFoundError, ValidationError
from fieldservice.validation import EMAIL_MAX_LENGTH, NAME_MAX_LENGTH, PHONE_MAX_LENGTH

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatStartRequest(BaseModel):
    name: str | None = Field(
        default=None, max_length=NAME_MAX_LENGTH, validation_alias=AliasChoices("name", "customerName")
    )
    phone: str | None = Field(
        default=None, max_length=PHONE_MAX_LENGTH, validation_alias=AliasChoices("phone", "customerPhone")
    )
    email: str | None = Field(
        default=None, max_length=EMAIL_MAX_LENGTH, validation_alias=AliasChoices("email", "customerEmail")
    )


class ChatStartResponse(BaseModel):
    success: bool = True
    session_id: str
    customer_id: str
    message: str


class ChatMessageRequest(BaseModel):
    session_id: str = Field(..., validation_alias=AliasChoices("session_id", "sessionId"))
    message: str | None = Field(default=None, max_length=4000)
    sender: str | None = Field(default=None, max_length=50)


class ChatMessageResponse(BaseModel):
    success: bool = True
    response: str


class ChatMessageModel(BaseModel):
    sender: str
    message: str
    timestamp: datetime

    @classmethod
    def from_entity(cls, entity: ChatMessage) -> "ChatMessageModel":
        return cls(sender=entity.sender, message=entity.message, timestamp=entity.created_at)


class ChatSessionModel(BaseModel):
    id: str
    customer_id: str
    started_at: datetime
    messages: list[ChatMessageModel]

    @classmethod
    def from_transcript(cls, transcript: ChatTranscript) -> "ChatSessionModel":
        return cls(
            id=transcript.session.id,
            customer_id=transcript.session.customer_id,
            started_at=transcript.session.started_at,
            messages=[ChatMessageModel.from_entity(message) for message in transcript.messages],
        )


class ChatHistoryResponse(BaseModel):
    success: bool = True
    session: ChatSessionModel


@router.post("/start", response_model=ChatStartResponse)
async def start_chat(payload: ChatStartRequest, service: ChatServiceDep) -> ChatStartResponse:
    try:
        started = await service.start_session(name=payload.name, phone=payload.phone, email=payload.email)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail={"message": "Name and phone are required", "fields": list(exc.fields)},
        ) from exc
    except DependencyFailure as exc:
        logger.exception("Chat start failed")
        raise HTTPException(status_code=500, detail="Failed to start chat") from exc
    return ChatStartResponse(session_id=started.session_id, customer_id=started.customer_id, message=started.greeting)


@router.post("/message", response_model=ChatMessageResponse)
async def post_message(payload: ChatMessageRequest, service: ChatServiceDep) -> ChatMessageResponse:
    try:
        reply = await service.post_message(payload.session_id, payload.message, payload.sender)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Message is required") from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Chat session not found") from exc
    except DependencyFailure as exc:
        logger.exception("Chat message failed for session %s", payload.session_id)
        raise HTTPException(status_code=500, detail="Failed to process message") from exc
    return ChatMessageResponse(response=reply)


@router.get("/history/{session_id}", response_model=ChatHistoryResponse)
async def get_history(session_id: str, service: ChatServiceDep) -> ChatHistoryResponse:
    try:
        transcript = await service.get_history(session_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Chat session not found") from exc
    except DependencyFailure as exc:
        logger.exception("Failed to load chat history for %s", session_id)
        raise HTTPException(status_code=500, detail="Failed to retrieve chat history") from exc
    return ChatHistoryResponse(session=ChatSessionModel.from_transcript(transcript))
