from __future__ import annotations

import pytest

from fieldservice.chat import ChatService, KeywordResponder
from fieldservice.chat.responder import BOOKING_REPLY, EMERGENCY_REPLY, FALLBACK_REPLY, PRICING_REPLY
from fieldservice.errors import ChatSessionNotFoundError, ValidationError


@pytest.fixture
def chat(chat_repository, repository, clock) -> ChatService:
    return ChatService(repository=chat_repository, customers=repository, responder=KeywordResponder(), clock=clock)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("My AC is NOT WORKING", EMERGENCY_REPLY),
        ("This is urgent, can you book me?", EMERGENCY_REPLY),
        ("Can I schedule a visit?", BOOKING_REPLY),
        ("How much is a tune-up?", PRICING_REPLY),
        ("hello", FALLBACK_REPLY),
    ],
)
async def test_keyword_responder_classifies_messages(text, expected):
    assert await KeywordResponder().respond(text) == expected


@pytest.mark.asyncio
async def test_start_session_upserts_customer_and_greets(chat, chat_repository, repository):
    started = await chat.start_session(name="Jane Doe", phone="555-1234", email="jane@example.com")

    assert started.greeting.startswith("Hi Jane!")
    assert started.session_id in chat_repository.sessions
    assert repository.customers[started.customer_id].phone == "555-1234"

    again = await chat.start_session(name="Jane Doe", phone="555-1234")
    assert again.customer_id == started.customer_id
    assert again.session_id != started.session_id


@pytest.mark.asyncio
async def test_start_session_requires_name_and_phone(chat, chat_repository):
    with pytest.raises(ValidationError):
        await chat.start_session(name="Jane", phone=None)
    assert chat_repository.sessions == {}


@pytest.mark.asyncio
async def test_messages_are_stored_in_order_with_replies(chat, clock):
    started = await chat.start_session(name="Jane Doe", phone="555-1234")

    reply = await chat.post_message(started.session_id, "How much does it cost?")
    clock.advance(minutes=1)
    await chat.post_message(started.session_id, "ok thanks", sender="customer")

    assert reply == PRICING_REPLY
    transcript = await chat.get_history(started.session_id)
    assert [(m.sender, m.message) for m in transcript.messages] == [
        ("customer", "How much does it cost?"),
        ("ai", PRICING_REPLY),
        ("customer", "ok thanks"),
        ("ai", FALLBACK_REPLY),
    ]


@pytest.mark.asyncio
async def test_unknown_session_and_blank_message(chat):
    with pytest.raises(ChatSessionNotFoundError):
        await chat.post_message("missing", "hello")
    with pytest.raises(ChatSessionNotFoundError):
        await chat.get_history("missing")
    with pytest.raises(ValidationError):
        await chat.post_message("missing", "   ")
