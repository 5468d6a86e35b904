import asyncio
from datetime import datetime
from unittest.mock import patch

import pytest

from app.schemas.appointment import AppointmentRead
from app.services.notification_service import (
    CeleryNotificationDispatcher,
    SimulatedNotificationDispatcher,
    dispatch_in_background,
    drain_notifications,
    get_notification_dispatcher,
    pending_notifications,
    send_appointment_cancellation,
    send_appointment_confirmation,
)
from tests.fixtures.booking_fixtures import RecordingNotifier, make_appointment


@pytest.fixture
def snapshot():
    appointment = make_appointment(1, datetime(2030, 1, 1, 9, 0), reference="BKABC12345")
    appointment.id = 1
    return AppointmentRead.model_validate(appointment)


class TestDispatcherSelection:
    def test_simulated_mode(self):
        assert isinstance(
            get_notification_dispatcher("simulated"), SimulatedNotificationDispatcher
        )

    def test_celery_mode(self):
        assert isinstance(get_notification_dispatcher("celery"), CeleryNotificationDispatcher)


class TestBackgroundDispatch:
    @pytest.mark.asyncio
    async def test_dispatch_runs_detached(self, snapshot):
        notifier = RecordingNotifier()
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_handler(appointment):
            started.set()
            await release.wait()
            await notifier.on_confirmed(appointment)

        task = dispatch_in_background(slow_handler, snapshot)
        await started.wait()

        assert not task.done()
        assert pending_notifications() == 1
        assert notifier.confirmed == []

        release.set()
        await drain_notifications()

        assert notifier.confirmed == [snapshot]
        assert pending_notifications() == 0

    @pytest.mark.asyncio
    async def test_failures_are_logged_not_raised(self, snapshot):
        notifier = RecordingNotifier(fail=True)

        with patch("app.services.notification_service.logger") as mock_logger:
            task = dispatch_in_background(notifier.on_cancelled, snapshot)
            await drain_notifications()

        assert task.exception() is None
        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args.kwargs["booking_reference"] == "BKABC12345"

    @pytest.mark.asyncio
    async def test_simulated_dispatcher_logs(self, snapshot):
        dispatcher = SimulatedNotificationDispatcher()

        with patch("app.services.notification_service.logger") as mock_logger:
            await dispatcher.on_confirmed(snapshot)
            await dispatcher.on_cancelled(snapshot)

        assert mock_logger.info.call_count == 2


class TestCeleryDispatcher:
    @pytest.mark.asyncio
    async def test_confirmation_enqueued(self, snapshot):
        dispatcher = CeleryNotificationDispatcher()

        with patch(
            "app.services.notification_service.send_appointment_confirmation"
        ) as mock_task:
            await dispatcher.on_confirmed(snapshot)

        payload = mock_task.delay.call_args.args[0]
        assert payload["booking_reference"] == "BKABC12345"
        assert payload["status"] == "CONFIRMED"
        assert payload["appointment_datetime"] == "2030-01-01T09:00:00"

    @pytest.mark.asyncio
    async def test_cancellation_enqueued(self, snapshot):
        dispatcher = CeleryNotificationDispatcher()

        with patch(
            "app.services.notification_service.send_appointment_cancellation"
        ) as mock_task:
            await dispatcher.on_cancelled(snapshot)

        mock_task.delay.assert_called_once()

    def test_tasks_route_to_notifications_queue(self):
        from app.core.celery import celery_app

        routes = celery_app.conf.task_routes
        assert routes["app.services.notification_service.*"] == {"queue": "notifications"}
        assert send_appointment_confirmation.name.startswith(
            "app.services.notification_service."
        )

    def test_tasks_accept_json_payload(self, snapshot):
        payload = snapshot.model_dump(mode="json")

        assert send_appointment_confirmation.run(payload) is None
        assert send_appointment_cancellation.run(payload) is None
