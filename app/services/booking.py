from datetime import date, datetime, time, timedelta
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.core.exceptions import AppointmentNotFoundError, BranchNotFoundError
from app.core.locks import CANCEL_KEY, SlotLockRegistry, slot_locks
from app.models.appointment import Appointment, AppointmentStatus
from app.models.branch import Branch
from app.repositories.appointment import AppointmentRepository
from app.repositories.branch import BranchRepository
from app.schemas.appointment import AppointmentCreate, AppointmentRead
from app.schemas.scheduling import TimeSlot
from app.services.availability import AvailabilityOracle
from app.services.notification_service import (
    NotificationDispatcher,
    dispatch_in_background,
    get_notification_dispatcher,
)
from app.services.reference import BookingReferenceGenerator
from app.services.slots import SlotCalculator
from app.services.validation import BookingValidator

logger = structlog.get_logger(__name__)


class BookingService:
    """Booking use cases: slot listing, create, cancel and lookup.

    Creating an appointment holds the per-slot lock from ``slot_locks`` and a
    row lock on the branch from the capacity check until commit, so two
    requests for the same slot cannot both pass the check.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        notifier: Optional[NotificationDispatcher] = None,
        locks: Optional[SlotLockRegistry] = None,
        appointments: Optional[AppointmentRepository] = None,
        branches: Optional[BranchRepository] = None,
    ):
        self.db = db
        self.clock = clock or system_clock
        self.notifier = notifier or get_notification_dispatcher()
        self.locks = locks or slot_locks
        self.appointments = appointments or AppointmentRepository(db)
        self.branches = branches or BranchRepository(db)

        self.validator = BookingValidator(self.appointments, self.branches, self.clock)
        self.reference_generator = BookingReferenceGenerator(self.appointments)
        self.slot_calculator = SlotCalculator(clock=self.clock)
        self.availability = AvailabilityOracle(self.appointments)

    async def get_available_slots(self, branch_id: int, day: date) -> list[TimeSlot]:
        """Slots for the day with their occupancy, including full ones."""
        branch = await self._fetch_branch(branch_id)
        candidates = self.slot_calculator.compute_slots(branch, day)
        return await self.availability.annotate(branch, candidates)

    async def get_day_schedule(self, branch_id: int, day: date) -> list[Appointment]:
        """Active appointments starting on ``day`` at the branch."""
        await self._fetch_branch(branch_id)
        start = datetime.combine(day, time.min)
        return await self.appointments.find_active_in_range(
            branch_id, start, start + timedelta(days=1)
        )

    async def create_appointment(self, request: AppointmentCreate) -> Appointment:
        """Admit and persist a booking, then send the confirmation."""
        async with self.locks.hold(request.branch_id, request.appointment_datetime):
            try:
                branch = await self._fetch_branch(request.branch_id, for_update=True)

                await self.validator.validate_slot_available(
                    branch.id, request.appointment_datetime
                )
                self.validator.validate_within_operating_hours(
                    branch, request.appointment_datetime, request.duration_minutes
                )

                reference = await self.reference_generator.generate()
                now = self.clock.utcnow()
                appointment = Appointment(
                    booking_reference=reference,
                    branch_id=branch.id,
                    customer_first_name=request.first_name,
                    customer_last_name=request.last_name,
                    customer_email=request.email,
                    customer_phone=request.phone_number,
                    appointment_datetime=request.appointment_datetime,
                    duration_minutes=request.duration_minutes,
                    purpose=request.purpose,
                    notes=request.notes,
                    status=AppointmentStatus.CONFIRMED.value,
                    created_at=now,
                    updated_at=now,
                )

                appointment = await self.appointments.save(appointment)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info(
            "Appointment booked",
            booking_reference=appointment.booking_reference,
            branch_id=appointment.branch_id,
            appointment_datetime=appointment.appointment_datetime.isoformat(),
        )
        dispatch_in_background(
            self.notifier.on_confirmed, AppointmentRead.model_validate(appointment)
        )
        return appointment

    async def cancel_appointment(
        self, booking_reference: str, reason: Optional[str] = None
    ) -> Appointment:
        """Cancel a pending or confirmed future appointment.

        The booking row is locked and re-read before the status check, so of
        two concurrent cancels the later one sees CANCELLED and fails.
        """
        async with self.locks.hold(CANCEL_KEY, booking_reference):
            try:
                appointment = await self.appointments.get_by_reference(
                    booking_reference, for_update=True
                )
                if appointment is None:
                    raise AppointmentNotFoundError(booking_reference)

                self.validator.validate_cancellable(appointment)

                appointment.cancel(
                    reason or settings.DEFAULT_CANCELLATION_REASON, self.clock.utcnow()
                )
                appointment = await self.appointments.save(appointment)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info(
            "Appointment cancelled",
            booking_reference=appointment.booking_reference,
            branch_id=appointment.branch_id,
            reason=appointment.cancellation_reason,
        )
        dispatch_in_background(
            self.notifier.on_cancelled, AppointmentRead.model_validate(appointment)
        )
        return appointment

    async def find_by_email_and_reference(
        self, email: str, booking_reference: str
    ) -> Optional[Appointment]:
        matches = await self.appointments.find_by_email_and_reference(
            email, booking_reference
        )
        return matches[0] if matches else None

    async def _fetch_branch(self, branch_id: int, for_update: bool = False) -> Branch:
        branch = await self.branches.get_by_id(branch_id, for_update=for_update)
        if branch is None:
            raise BranchNotFoundError(branch_id)
        return branch
