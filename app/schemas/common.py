from datetime import datetime

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error body returned for failed requests."""

    status: int = Field(..., ge=100, le=599)
    message: str
    timestamp: datetime
