from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class CandidateSlot(BaseModel):
    """Bookable interval derived from a branch's operating window."""

    start_time: datetime
    end_time: datetime

    @model_validator(mode="after")
    def validate_interval(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class TimeSlot(CandidateSlot):
    """Candidate slot annotated with its current occupancy."""

    available: bool
    current_bookings: int = Field(..., ge=0)
    max_bookings: int = Field(..., ge=1)

    @model_validator(mode="after")
    def validate_availability(self):
        if self.available != (self.current_bookings < self.max_bookings):
            raise ValueError("available must reflect current_bookings < max_bookings")
        return self
