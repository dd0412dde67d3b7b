"""Chat widget session capture."""

from .models import ChatMessage, ChatSession, ChatSessionStart, ChatTranscript
from .repository import ChatRepository
from .responder import KeywordResponder, Responder
from .service import ChatService

__all__ = [
    "ChatMessage",
    "ChatRepository",
    "ChatService",
    "ChatSession",
    "ChatSessionStart",
    "ChatTranscript",
    "KeywordResponder",
    "Responder",
]
