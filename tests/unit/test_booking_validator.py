"""Test booking admission and cancellation guards."""

from datetime import datetime, time, timedelta
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import (
    AlreadyCancelledError,
    BadRequestError,
    BranchNotFoundError,
    CannotCancelCompletedError,
    CannotCancelNoShowError,
    CapacityExceededError,
    OutsideOperatingHoursError,
    PastAppointmentError,
)
from app.models.appointment import AppointmentStatus
from app.services.validation import BookingValidator
from tests.fixtures.booking_fixtures import FixedClock, make_appointment, make_branch

NOW = datetime(2025, 3, 10, 12, 0)
TOMORROW = NOW.date() + timedelta(days=1)


def at(hour: int, minute: int = 0, day=TOMORROW) -> datetime:
    return datetime.combine(day, time(hour, minute))


@pytest.fixture
def appointments():
    repository = AsyncMock()
    repository.count_active_at.return_value = 0
    return repository


@pytest.fixture
def branches():
    repository = AsyncMock()
    repository.get_by_id.return_value = make_branch(id=1, capacity=3)
    return repository


@pytest.fixture
def validator(appointments, branches):
    return BookingValidator(appointments, branches, FixedClock(NOW))


class TestValidateSlotAvailable:
    @pytest.mark.asyncio
    async def test_passes_below_capacity(self, validator, appointments):
        appointments.count_active_at.return_value = 2

        await validator.validate_slot_available(1, at(9))

        appointments.count_active_at.assert_awaited_once_with(1, at(9))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [3, 4])
    async def test_rejects_at_or_over_capacity(self, validator, appointments, count):
        appointments.count_active_at.return_value = count

        with pytest.raises(CapacityExceededError) as exc_info:
            await validator.validate_slot_available(1, at(9))

        assert isinstance(exc_info.value, BadRequestError)
        assert exc_info.value.status_code == 400
        assert "branch 1" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unknown_branch(self, validator, branches, appointments):
        branches.get_by_id.return_value = None

        with pytest.raises(BranchNotFoundError) as exc_info:
            await validator.validate_slot_available(99, at(9))

        assert exc_info.value.status_code == 404
        appointments.count_active_at.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refetches_branch_every_call(self, validator, branches):
        await validator.validate_slot_available(1, at(9))
        await validator.validate_slot_available(1, at(9, 30))

        assert branches.get_by_id.await_count == 2
        branches.get_by_id.assert_awaited_with(1, for_update=True)


class TestValidateWithinOperatingHours:
    @pytest.mark.parametrize(
        "start,duration",
        [
            (at(8, 0), 30),
            (at(16, 30), 30),  # ends exactly at closing
            (at(16, 45), 15),
            (at(10, 7), 45),  # off-grid start times are allowed
            (at(8, 0), 540),
        ],
    )
    def test_accepts_inside_window(self, validator, start, duration):
        validator.validate_within_operating_hours(make_branch(), start, duration)

    @pytest.mark.parametrize(
        "start,duration",
        [
            (at(7, 30), 30),  # before opening
            (at(7, 59), 15),
            (at(16, 45), 30),  # runs past closing
            (at(17, 0), 15),
            (at(23, 50), 30),  # crosses midnight
        ],
    )
    def test_rejects_outside_window(self, validator, start, duration):
        with pytest.raises(OutsideOperatingHoursError) as exc_info:
            validator.validate_within_operating_hours(make_branch(), start, duration)

        assert exc_info.value.message == (
            "Appointment time is outside branch operating hours"
        )

    @pytest.mark.parametrize("duration", [24 * 60 + 1, 10**10])
    def test_rejects_durations_longer_than_a_day(self, validator, duration):
        with pytest.raises(OutsideOperatingHoursError):
            validator.validate_within_operating_hours(make_branch(), at(9), duration)

    def test_degenerate_branch_rejects_everything(self, validator):
        branch = make_branch(opening=time(17, 0), closing=time(8, 0))

        with pytest.raises(OutsideOperatingHoursError):
            validator.validate_within_operating_hours(branch, at(12), 30)


class TestValidateCancellable:
    @pytest.mark.parametrize(
        "status,error",
        [
            (AppointmentStatus.CANCELLED, AlreadyCancelledError),
            (AppointmentStatus.COMPLETED, CannotCancelCompletedError),
            (AppointmentStatus.NO_SHOW, CannotCancelNoShowError),
        ],
    )
    def test_terminal_statuses(self, validator, status, error):
        appointment = make_appointment(1, at(9), status=status)

        with pytest.raises(error):
            validator.validate_cancellable(appointment)

    def test_terminal_status_wins_over_past_time(self, validator):
        appointment = make_appointment(
            1, NOW - timedelta(days=3), status=AppointmentStatus.CANCELLED
        )

        with pytest.raises(AlreadyCancelledError):
            validator.validate_cancellable(appointment)

    @pytest.mark.parametrize(
        "status", [AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED]
    )
    def test_active_future_appointment_is_cancellable(self, validator, status):
        validator.validate_cancellable(make_appointment(1, at(9), status=status))

    @pytest.mark.parametrize(
        "status", [AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED]
    )
    def test_active_past_appointment_is_not(self, validator, status):
        appointment = make_appointment(1, NOW - timedelta(minutes=1), status=status)

        with pytest.raises(PastAppointmentError) as exc_info:
            validator.validate_cancellable(appointment)

        assert exc_info.value.message == "Cannot cancel past appointments"

    def test_appointment_starting_now_is_cancellable(self, validator):
        validator.validate_cancellable(make_appointment(1, NOW))
