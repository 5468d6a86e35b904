import uuid
from typing import Optional

import structlog

from app.core.config import settings
from app.core.exceptions import ReferenceExhaustedError
from app.repositories.appointment import AppointmentRepository

logger = structlog.get_logger(__name__)

REFERENCE_PREFIX = "BK"
REFERENCE_BODY_LENGTH = 8


class BookingReferenceGenerator:
    """Produces booking references of the form ``BK`` + 8 of ``[A-Z0-9]``.

    The existence check is an optimization; the unique index on
    ``appointments.booking_reference`` is what actually guarantees uniqueness.
    """

    def __init__(
        self, appointments: AppointmentRepository, max_attempts: Optional[int] = None
    ):
        self.appointments = appointments
        self.max_attempts = max_attempts or settings.BOOKING_REFERENCE_MAX_ATTEMPTS

    @staticmethod
    def candidate() -> str:
        return REFERENCE_PREFIX + uuid.uuid4().hex[:REFERENCE_BODY_LENGTH].upper()

    async def generate(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            reference = self.candidate()
            if not await self.appointments.reference_exists(reference):
                return reference
            logger.warning(
                "Booking reference collision", reference=reference, attempt=attempt
            )

        logger.error("Booking reference generation exhausted", attempts=self.max_attempts)
        raise ReferenceExhaustedError(self.max_attempts)
