"""Appointment notifications.

The booking service hands a committed appointment snapshot to a dispatcher
through ``dispatch_in_background``; the request never waits on delivery and
delivery failures are only logged.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional

import structlog

from app.core.celery import celery_app
from app.core.config import settings
from app.schemas.appointment import AppointmentRead

logger = structlog.get_logger(__name__)

# Strong references so pending tasks are not garbage collected mid-flight
_background_tasks: set[asyncio.Task] = set()


class NotificationDispatcher:
    """Receives appointment lifecycle events."""

    async def on_confirmed(self, appointment: AppointmentRead) -> None:
        raise NotImplementedError

    async def on_cancelled(self, appointment: AppointmentRead) -> None:
        raise NotImplementedError


class SimulatedNotificationDispatcher(NotificationDispatcher):
    """Logs events instead of delivering them."""

    async def on_confirmed(self, appointment: AppointmentRead) -> None:
        logger.info(
            "[SIMULATED] Appointment confirmation sent",
            email=appointment.customer_email,
            booking_reference=appointment.booking_reference,
            appointment_datetime=appointment.appointment_datetime.isoformat(),
            duration_minutes=appointment.duration_minutes,
        )

    async def on_cancelled(self, appointment: AppointmentRead) -> None:
        logger.info(
            "[SIMULATED] Appointment cancellation sent",
            email=appointment.customer_email,
            booking_reference=appointment.booking_reference,
            appointment_datetime=appointment.appointment_datetime.isoformat(),
            reason=appointment.cancellation_reason,
        )


class CeleryNotificationDispatcher(NotificationDispatcher):
    """Publishes events to the ``notifications`` Celery queue."""

    async def on_confirmed(self, appointment: AppointmentRead) -> None:
        await asyncio.to_thread(
            send_appointment_confirmation.delay, appointment.model_dump(mode="json")
        )

    async def on_cancelled(self, appointment: AppointmentRead) -> None:
        await asyncio.to_thread(
            send_appointment_cancellation.delay, appointment.model_dump(mode="json")
        )


@celery_app.task(name="app.services.notification_service.send_appointment_confirmation")
def send_appointment_confirmation(appointment: dict) -> None:
    """Deliver a booking confirmation."""
    logger.info(
        "Delivering appointment confirmation",
        email=appointment.get("customer_email"),
        booking_reference=appointment.get("booking_reference"),
    )


@celery_app.task(name="app.services.notification_service.send_appointment_cancellation")
def send_appointment_cancellation(appointment: dict) -> None:
    """Deliver a cancellation notice."""
    logger.info(
        "Delivering appointment cancellation",
        email=appointment.get("customer_email"),
        booking_reference=appointment.get("booking_reference"),
        reason=appointment.get("cancellation_reason"),
    )


def get_notification_dispatcher(mode: Optional[str] = None) -> NotificationDispatcher:
    mode = mode or settings.NOTIFICATIONS_MODE
    if mode == "celery":
        return CeleryNotificationDispatcher()
    return SimulatedNotificationDispatcher()


async def _deliver(
    handler: Callable[[AppointmentRead], Awaitable[None]], appointment: AppointmentRead
) -> None:
    try:
        await handler(appointment)
    except Exception as e:
        logger.error(
            "Notification dispatch failed",
            booking_reference=appointment.booking_reference,
            handler=getattr(handler, "__name__", repr(handler)),
            exc_info=e,
        )


def dispatch_in_background(
    handler: Callable[[AppointmentRead], Awaitable[None]], appointment: AppointmentRead
) -> asyncio.Task:
    """Run ``handler(appointment)`` detached from the caller."""
    task = asyncio.create_task(_deliver(handler, appointment))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


def pending_notifications() -> int:
    return len(_background_tasks)


async def drain_notifications() -> None:
    """Wait for every dispatched notification to finish."""
    while _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)
