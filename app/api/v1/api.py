from fastapi import APIRouter

from app.api.v1.endpoints import appointments

api_router = APIRouter()

# Slot listing, booking and cancellation endpoints
api_router.include_router(
    appointments.router, prefix="/appointments", tags=["appointments"]
)
