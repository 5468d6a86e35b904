from collections.abc import Iterable

import structlog

from app.models.branch import Branch
from app.repositories.appointment import AppointmentRepository
from app.schemas.scheduling import CandidateSlot, TimeSlot

logger = structlog.get_logger(__name__)


class AvailabilityOracle:
    """Annotates candidate slots with their current occupancy.

    Issues one count query per slot. A day holds at most a few dozen slots,
    so the queries are not batched.
    """

    def __init__(self, appointments: AppointmentRepository):
        self.appointments = appointments

    async def annotate(
        self, branch: Branch, candidates: Iterable[CandidateSlot]
    ) -> list[TimeSlot]:
        capacity = branch.max_concurrent_appointments_per_slot
        slots = []

        for candidate in candidates:
            current = await self.appointments.count_active_at(
                branch.id, candidate.start_time
            )
            slots.append(
                TimeSlot(
                    start_time=candidate.start_time,
                    end_time=candidate.end_time,
                    available=current < capacity,
                    current_bookings=current,
                    max_bookings=capacity,
                )
            )

        logger.debug(
            "Annotated slots",
            branch_id=branch.id,
            total=len(slots),
            available=sum(1 for slot in slots if slot.available),
        )
        return slots
