"""Reply generation for the chat widget.

Session orchestration only depends on the :class:`Responder` protocol, so the
keyword matcher can be swapped for an LLM-backed implementation.
"""

from __future__ import annotations

from typing import Protocol, Sequence


class Responder(Protocol):
    async def respond(self, text: str) -> str:
        ...


EMERGENCY_REPLY = (
    "I understand this is urgent. Let me get your information and we'll have a technician "
    "contact you within 15 minutes. What's your address?"
)
BOOKING_REPLY = (
    "I'd be happy to schedule an appointment for you. What type of service do you need? "
    "(AC repair, heating, maintenance, etc.)"
)
PRICING_REPLY = (
    "Service call fees start at $89. The total cost depends on the specific repair needed. "
    "Would you like to schedule a diagnostic appointment?"
)
FALLBACK_REPLY = (
    "I can help you with:\n"
    "• Schedule an appointment\n"
    "• Emergency service\n"
    "• Pricing information\n"
    "• Service history\n\n"
    "What would you like to do?"
)


class KeywordResponder:
    """Classify a message by keyword into emergency, booking, pricing or fallback."""

    _RULES: Sequence[tuple[tuple[str, ...], str]] = (
        (("emergency", "urgent", "not working"), EMERGENCY_REPLY),
        (("appointment", "schedule", "book"), BOOKING_REPLY),
        (("cost", "price", "how much"), PRICING_REPLY),
    )

    async def respond(self, text: str) -> str:
        lowered = text.lower()
        for keywords, reply in self._RULES:
            if any(keyword in lowered for keyword in keywords):
                return reply
        return FALLBACK_REPLY
