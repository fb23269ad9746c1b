"""Pydantic response models for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ConfirmationResponse(BaseModel):
    """Result of sending a booking confirmation."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    email_sent: bool = Field(alias="emailSent")
    calendar_event_created: bool = Field(alias="calendarEventCreated")


class SuccessResponse(BaseModel):
    success: bool


class ReminderSweepResponse(BaseModel):
    """Counts from one 24-hour reminder sweep."""

    success: bool
    checked: int
    reminded: int


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
