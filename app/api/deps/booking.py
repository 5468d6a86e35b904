from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.services.booking import BookingService
from app.services.notification_service import (
    NotificationDispatcher,
    get_notification_dispatcher,
)


def get_notifier() -> NotificationDispatcher:
    return get_notification_dispatcher()


async def get_booking_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> BookingService:
    """Booking service bound to the request's database session."""
    return BookingService(db, notifier=notifier)
