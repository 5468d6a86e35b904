from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
import enum
from datetime import datetime


class AppointmentStatus(enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


# Statuses that hold a place in a slot
ACTIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)
ACTIVE_STATUS_VALUES = tuple(s.value for s in ACTIVE_STATUSES)


class Appointment(Base):
    """Customer appointment at a branch, identified externally by its booking reference."""

    __tablename__ = "appointments"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    booking_reference = Column(String(10), unique=True, nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False)

    # Customer contact
    customer_first_name = Column(String(100), nullable=False)
    customer_last_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(20), nullable=False)

    # Scheduling details (branch wall-clock time)
    appointment_datetime = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)
    purpose = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)

    # Status is stored as the enum's string value
    status = Column(
        String(20), nullable=False, default=AppointmentStatus.CONFIRMED.value, index=True
    )

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Cancellation
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "duration_minutes >= 15",
            name="check_min_duration",
        ),
        Index("ix_appointments_branch_slot", "branch_id", "appointment_datetime"),
    )

    branch = relationship("Branch")

    @property
    def status_enum(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)

    def cancel(self, reason: str, cancelled_at: datetime) -> None:
        """Mark the appointment cancelled. Eligibility is checked by the caller."""
        self.status = AppointmentStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_at = cancelled_at
        self.updated_at = cancelled_at

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, reference='{self.booking_reference}', "
            f"status='{self.status}', datetime='{self.appointment_datetime}', "
            f"branch_id={self.branch_id})>"
        )
