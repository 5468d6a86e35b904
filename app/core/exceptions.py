from datetime import datetime


class BookingError(Exception):
    """Base class for booking failures that carry a client-facing message."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# Not found
class NotFoundError(BookingError):
    status_code = 404


class BranchNotFoundError(NotFoundError):
    def __init__(self, branch_id: int):
        self.branch_id = branch_id
        super().__init__("Branch not found")


class AppointmentNotFoundError(NotFoundError):
    def __init__(self, booking_reference: str):
        self.booking_reference = booking_reference
        super().__init__("Appointment not found")


# Bad request
class BadRequestError(BookingError):
    status_code = 400


class CapacityExceededError(BadRequestError):
    def __init__(self, branch_id: int, slot_start: datetime):
        self.branch_id = branch_id
        self.slot_start = slot_start
        super().__init__(
            f"Slot at {slot_start.isoformat()} for branch {branch_id} is not available"
        )


class OutsideOperatingHoursError(BadRequestError):
    def __init__(self):
        super().__init__("Appointment time is outside branch operating hours")


class AlreadyCancelledError(BadRequestError):
    def __init__(self):
        super().__init__("Appointment is already cancelled")


class CannotCancelCompletedError(BadRequestError):
    def __init__(self):
        super().__init__("Cannot cancel a completed appointment")


class CannotCancelNoShowError(BadRequestError):
    def __init__(self):
        super().__init__("Cannot cancel a no-show appointment")


class PastAppointmentError(BadRequestError):
    def __init__(self):
        super().__init__("Cannot cancel past appointments")


# Internal
class InternalBookingError(BookingError):
    status_code = 500


class ReferenceExhaustedError(InternalBookingError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Failed to generate unique booking reference after {attempts} attempts"
        )
