from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings


class Clock:
    """Source of "now" for booking rules.

    Appointment times and branch operating hours are naive wall-clock values
    in the booking timezone, so ``now()`` is naive too. Audit timestamps use
    ``utcnow()``.
    """

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = ZoneInfo(tz_name or settings.BOOKING_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self.tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()

    def utcnow(self) -> datetime:
        return datetime.now(timezone.utc)


system_clock = Clock()
