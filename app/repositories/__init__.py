from app.repositories.appointment import AppointmentRepository
from app.repositories.branch import BranchRepository

__all__ = ["AppointmentRepository", "BranchRepository"]
