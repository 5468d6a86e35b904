"""Storage access for appointments.

Repositories never commit; the booking service owns the transaction.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import ACTIVE_STATUS_VALUES, Appointment


class AppointmentRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_reference(
        self, booking_reference: str, for_update: bool = False
    ) -> Optional[Appointment]:
        """Resolve an appointment by booking reference.

        ``for_update`` locks the row until the transaction ends and reloads it
        even if the session already holds a copy.
        """
        query = select(Appointment).where(
            Appointment.booking_reference == booking_reference
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def reference_exists(self, booking_reference: str) -> bool:
        result = await self.db.execute(
            select(func.count())
            .select_from(Appointment)
            .where(Appointment.booking_reference == booking_reference)
        )
        return result.scalar_one() > 0

    async def find_active_in_range(
        self, branch_id: int, start: datetime, end: datetime
    ) -> list[Appointment]:
        """Active appointments starting in ``[start, end)``, earliest first."""
        result = await self.db.execute(
            select(Appointment)
            .where(
                and_(
                    Appointment.branch_id == branch_id,
                    Appointment.appointment_datetime >= start,
                    Appointment.appointment_datetime < end,
                    Appointment.status.in_(ACTIVE_STATUS_VALUES),
                )
            )
            .order_by(Appointment.appointment_datetime.asc(), Appointment.id.asc())
        )
        return list(result.scalars().all())

    async def count_active_at(self, branch_id: int, slot_start: datetime) -> int:
        """Count active appointments starting exactly at ``slot_start``."""
        result = await self.db.execute(
            select(func.count())
            .select_from(Appointment)
            .where(
                and_(
                    Appointment.branch_id == branch_id,
                    Appointment.appointment_datetime == slot_start,
                    Appointment.status.in_(ACTIVE_STATUS_VALUES),
                )
            )
        )
        return result.scalar_one()

    async def find_by_email_and_reference(
        self, email: str, booking_reference: str
    ) -> list[Appointment]:
        result = await self.db.execute(
            select(Appointment).where(
                and_(
                    func.lower(Appointment.customer_email) == email.lower(),
                    Appointment.booking_reference == booking_reference,
                )
            )
        )
        return list(result.scalars().all())

    async def save(self, appointment: Appointment) -> Appointment:
        """Insert or update, returning the row with its identity and timestamps."""
        self.db.add(appointment)
        await self.db.flush()
        await self.db.refresh(appointment)
        return appointment
