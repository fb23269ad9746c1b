"""API Pydantic models."""

from .requests import AdminCancellationRequest, CancelTokenRequest, ConfirmationRequest
from .responses import (
    ConfirmationResponse,
    ErrorCodes,
    ErrorResponse,
    HealthResponse,
    ReminderSweepResponse,
    SuccessResponse,
)

__all__ = [
    "AdminCancellationRequest",
    "CancelTokenRequest",
    "ConfirmationRequest",
    "ConfirmationResponse",
    "ErrorCodes",
    "ErrorResponse",
    "HealthResponse",
    "ReminderSweepResponse",
    "SuccessResponse",
]
