from datetime import date as date_type
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import EmailStr

from app.api.deps.booking import get_booking_service
from app.core.exceptions import AppointmentNotFoundError
from app.schemas.appointment import (
    BOOKING_REFERENCE_PATTERN,
    AppointmentCancel,
    AppointmentCreate,
    AppointmentRead,
)
from app.schemas.common import ErrorResponse
from app.schemas.scheduling import TimeSlot
from app.services.booking import BookingService

logger = structlog.get_logger(__name__)

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse}}
BAD_REQUEST = {400: {"model": ErrorResponse}}


@router.get("/slots", response_model=list[TimeSlot], responses=NOT_FOUND)
async def get_available_slots(
    branch_id: int = Query(..., description="Branch to list slots for"),
    date: date_type = Query(..., description="Day to list slots for (YYYY-MM-DD)"),
    service: BookingService = Depends(get_booking_service),
):
    """List the day's slots with their occupancy."""
    return await service.get_available_slots(branch_id, date)


@router.get(
    "/schedule", response_model=list[AppointmentRead], responses=NOT_FOUND
)
async def get_day_schedule(
    branch_id: int = Query(...),
    date: date_type = Query(...),
    service: BookingService = Depends(get_booking_service),
):
    """Active appointments at a branch for one day."""
    return await service.get_day_schedule(branch_id, date)


@router.post(
    "/book",
    response_model=AppointmentRead,
    status_code=status.HTTP_201_CREATED,
    responses={**NOT_FOUND, **BAD_REQUEST},
)
async def book_appointment(
    appointment_data: AppointmentCreate,
    service: BookingService = Depends(get_booking_service),
):
    """Book a new appointment."""
    return await service.create_appointment(appointment_data)


@router.get("/lookup", response_model=AppointmentRead, responses=NOT_FOUND)
async def lookup_appointment(
    email: EmailStr = Query(...),
    booking_reference: str = Query(..., pattern=BOOKING_REFERENCE_PATTERN),
    service: BookingService = Depends(get_booking_service),
):
    """Find an appointment by customer email and booking reference."""
    appointment = await service.find_by_email_and_reference(email, booking_reference)
    if appointment is None:
        raise AppointmentNotFoundError(booking_reference)
    return appointment


@router.put(
    "/cancel", response_model=AppointmentRead, responses={**NOT_FOUND, **BAD_REQUEST}
)
async def cancel_appointment(
    cancel_request: Annotated[AppointmentCancel, Query()],
    service: BookingService = Depends(get_booking_service),
):
    """Cancel an appointment; the email must match the booking."""
    appointment = await service.find_by_email_and_reference(
        cancel_request.email, cancel_request.booking_reference
    )
    if appointment is None:
        logger.warning(
            "Cancellation attempted with mismatched email",
            booking_reference=cancel_request.booking_reference,
        )
        raise AppointmentNotFoundError(cancel_request.booking_reference)
    return await service.cancel_appointment(
        cancel_request.booking_reference, cancel_request.reason
    )
