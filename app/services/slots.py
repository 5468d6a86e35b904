from datetime import date, datetime, timedelta
from typing import Optional

import structlog

from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.models.branch import Branch
from app.schemas.scheduling import CandidateSlot

logger = structlog.get_logger(__name__)


class SlotCalculator:
    """Splits a branch's operating window into fixed-length candidate slots."""

    def __init__(
        self,
        slot_duration_minutes: Optional[int] = None,
        clock: Optional[Clock] = None,
    ):
        self.slot_duration = timedelta(
            minutes=slot_duration_minutes or settings.SLOT_DURATION_MINUTES
        )
        self.clock = clock or system_clock

    def compute_slots(self, branch: Branch, day: date) -> list[CandidateSlot]:
        """
        Candidate slots for ``branch`` on ``day``, in start order.

        Past days produce nothing. On the current day, slots that already
        started are skipped. A slot may end exactly at closing time.
        """
        now = self.clock.now()
        if day < now.date():
            logger.debug("Date is in the past, returning empty slots", date=str(day))
            return []

        if not branch.has_operating_window:
            logger.debug(
                "Branch has no operating window, returning empty slots",
                branch_id=branch.id,
            )
            return []

        window_end = datetime.combine(day, branch.closing_time)
        slot_start = datetime.combine(day, branch.opening_time)

        slots = []
        while slot_start + self.slot_duration <= window_end:
            if slot_start >= now:
                slots.append(
                    CandidateSlot(
                        start_time=slot_start,
                        end_time=slot_start + self.slot_duration,
                    )
                )
            slot_start += self.slot_duration

        logger.debug(
            "Computed candidate slots",
            branch_id=branch.id,
            date=str(day),
            slot_count=len(slots),
        )
        return slots
