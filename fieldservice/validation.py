"""Input helpers shared by the intake, dispatch and chat services."""

from __future__ import annotations

from datetime import date, datetime, time

from fieldservice.errors import ValidationError


def clean(value: str | None) -> str | None:
    """Strip ``value`` and collapse blanks to ``None``."""

    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def require_fields(**values: str | None) -> dict[str, str]:
    """Return the cleaned values or raise naming every missing field."""

    cleaned = {key: clean(value) for key, value in values.items()}
    missing = [key for key, value in cleaned.items() if value is None]
    if missing:
        names = ", ".join(missing)
        raise ValidationError(f"Missing required fields: {names}", fields=missing)
    return {key: value for key, value in cleaned.items() if value is not None}


def split_name(name: str) -> tuple[str, str]:
    """Split a full name into first name and the remainder."""

    parts = name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def parse_preferred(value: str | None) -> tuple[date | None, time | None]:
    """Parse an ISO-8601 date or datetime; free text yields ``(None, None)``."""

    text = clean(value)
    if text is None:
        return None, None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            return date.fromisoformat(text), None
        except ValueError:
            return None, None
    if len(text) <= 10:
        return parsed.date(), None
    return parsed.date(), parsed.time()


# Column widths of the customers and service_requests tables
NAME_MAX_LENGTH = 255
PHONE_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 255
SERVICE_MAX_LENGTH = 255
