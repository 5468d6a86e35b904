from datetime import datetime, timedelta
from typing import Optional

import structlog

from app.core.clock import Clock, system_clock
from app.core.exceptions import (
    AlreadyCancelledError,
    BranchNotFoundError,
    CannotCancelCompletedError,
    CannotCancelNoShowError,
    CapacityExceededError,
    OutsideOperatingHoursError,
    PastAppointmentError,
)
from app.models.appointment import Appointment, AppointmentStatus
from app.models.branch import Branch
from app.repositories.appointment import AppointmentRepository
from app.repositories.branch import BranchRepository

logger = structlog.get_logger(__name__)

MINUTES_PER_DAY = 24 * 60

# Terminal statuses and the error raised when cancelling from them
TERMINAL_CANCELLATION_ERRORS = {
    AppointmentStatus.CANCELLED: AlreadyCancelledError,
    AppointmentStatus.COMPLETED: CannotCancelCompletedError,
    AppointmentStatus.NO_SHOW: CannotCancelNoShowError,
}


class BookingValidator:
    """Admission checks run inside the booking transaction, right before a write."""

    def __init__(
        self,
        appointments: AppointmentRepository,
        branches: BranchRepository,
        clock: Optional[Clock] = None,
    ):
        self.appointments = appointments
        self.branches = branches
        self.clock = clock or system_clock

    async def validate_slot_available(self, branch_id: int, slot_start: datetime) -> None:
        """Fail unless the exact instant still has room at the branch.

        The branch is re-read with its row lock, never from the lookup cache.
        """
        branch = await self.branches.get_by_id(branch_id, for_update=True)
        if branch is None:
            raise BranchNotFoundError(branch_id)

        current = await self.appointments.count_active_at(branch_id, slot_start)
        if current >= branch.max_concurrent_appointments_per_slot:
            logger.info(
                "Slot capacity reached",
                branch_id=branch_id,
                slot_start=slot_start.isoformat(),
                current_bookings=current,
                max_bookings=branch.max_concurrent_appointments_per_slot,
            )
            raise CapacityExceededError(branch_id, slot_start)

    def validate_within_operating_hours(
        self, branch: Branch, start: datetime, duration_minutes: int
    ) -> None:
        """The appointment must start at or after opening and end by closing."""
        if duration_minutes > MINUTES_PER_DAY:
            raise OutsideOperatingHoursError()

        opening = datetime.combine(start.date(), branch.opening_time)
        closing = datetime.combine(start.date(), branch.closing_time)
        end = start + timedelta(minutes=duration_minutes)

        if start < opening or end > closing:
            raise OutsideOperatingHoursError()

    def validate_cancellable(self, appointment: Appointment) -> None:
        status = appointment.status_enum

        error = TERMINAL_CANCELLATION_ERRORS.get(status)
        if error is not None:
            raise error()

        # PENDING or CONFIRMED; starting exactly now is still cancellable
        if appointment.appointment_datetime < self.clock.now():
            raise PastAppointmentError()
