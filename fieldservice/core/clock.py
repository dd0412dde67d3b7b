from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo


@dataclass(slots=True)
class BusinessClock:
    """Wall clock anchored to the business's local timezone.

    Timestamps are stored in UTC; "today" and note markers follow local time.
    """

    timezone_name: str = "America/New_York"
    _zone: ZoneInfo = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._zone = ZoneInfo(self.timezone_name)

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def local(self, moment: datetime | None = None) -> datetime:
        return (moment or self.now()).astimezone(self._zone)

    def today(self) -> date:
        return self.local().date()
