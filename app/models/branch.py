from datetime import time

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text, Time
from sqlalchemy.sql import func

from app.core.database import Base


class Branch(Base):
    """Branch location with its daily operating window and per-slot capacity.

    A branch whose ``opening_time`` is not before ``closing_time`` is kept as
    is; it simply yields no bookable slots.
    """

    __tablename__ = "branches"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), unique=True, nullable=True)
    name = Column(String(100), nullable=False)

    # Contact
    address = Column(Text, nullable=True)
    phone_number = Column(String(20), nullable=True)

    # Operating window (wall-clock time of day)
    opening_time = Column(Time, nullable=False)
    closing_time = Column(Time, nullable=False)

    # Capacity
    max_concurrent_appointments_per_slot = Column(Integer, nullable=False, default=1)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "max_concurrent_appointments_per_slot >= 1",
            name="check_positive_slot_capacity",
        ),
    )

    @property
    def has_operating_window(self) -> bool:
        return self.opening_time < self.closing_time

    def to_cache(self) -> dict:
        """Serializable snapshot used by the branch lookup cache."""
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "address": self.address,
            "phone_number": self.phone_number,
            "opening_time": self.opening_time.isoformat(),
            "closing_time": self.closing_time.isoformat(),
            "max_concurrent_appointments_per_slot": (
                self.max_concurrent_appointments_per_slot
            ),
        }

    @classmethod
    def from_cache(cls, snapshot: dict) -> "Branch":
        return cls(
            id=snapshot["id"],
            code=snapshot.get("code"),
            name=snapshot["name"],
            address=snapshot.get("address"),
            phone_number=snapshot.get("phone_number"),
            opening_time=time.fromisoformat(snapshot["opening_time"]),
            closing_time=time.fromisoformat(snapshot["closing_time"]),
            max_concurrent_appointments_per_slot=snapshot[
                "max_concurrent_appointments_per_slot"
            ],
        )

    def __repr__(self):
        return (
            f"<Branch(id={self.id}, name='{self.name}', "
            f"hours='{self.opening_time}-{self.closing_time}', "
            f"capacity={self.max_concurrent_appointments_per_slot})>"
        )
