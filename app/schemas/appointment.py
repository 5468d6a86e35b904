from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.clock import system_clock

# Import enums from the model to avoid duplication
from app.models.appointment import AppointmentStatus

BOOKING_REFERENCE_PATTERN = r"^BK[A-Z0-9]{8}$"
# An appointment never spans more than one day
MAX_DURATION_MINUTES = 24 * 60
PHONE_NUMBER_PATTERN = r"^[\+]?[0-9\-\s\(\)]+$"


class AppointmentCreate(BaseModel):
    """Booking request for a single appointment."""

    branch_id: int = Field(..., description="Branch where the appointment takes place")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr = Field(..., max_length=255)
    phone_number: str = Field(..., max_length=20, pattern=PHONE_NUMBER_PATTERN)
    appointment_datetime: datetime = Field(
        ..., description="Start of the appointment in branch local time"
    )
    duration_minutes: int = Field(30, ge=15, le=MAX_DURATION_MINUTES)
    purpose: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("appointment_datetime")
    @classmethod
    def validate_in_future(cls, v: datetime) -> datetime:
        # Branch hours are wall-clock times, so offsets are dropped
        if v.tzinfo is not None:
            v = v.replace(tzinfo=None)
        if v <= system_clock.now():
            raise ValueError("Appointment must be in the future")
        return v


class AppointmentCancel(BaseModel):
    email: EmailStr
    booking_reference: str = Field(..., pattern=BOOKING_REFERENCE_PATTERN)
    reason: Optional[str] = Field(None, max_length=500)


# Response schemas
class AppointmentRead(BaseModel):
    id: int
    booking_reference: str = Field(..., pattern=BOOKING_REFERENCE_PATTERN)
    branch_id: int
    customer_first_name: str
    customer_last_name: str
    customer_email: str
    customer_phone: str
    appointment_datetime: datetime
    duration_minutes: int
    purpose: Optional[str] = None
    notes: Optional[str] = None
    status: AppointmentStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    class Config:
        from_attributes = True
