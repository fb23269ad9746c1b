"""Pydantic request models for API endpoints.

Every field is optional at the model level, and bookingId is accepted as
sent, so that missing or malformed input is reported with the standard error
body instead of a framework validation error.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _BookingIdModel(_CamelModel):
    booking_id: int | str | None = Field(None, alias="bookingId")

    @field_validator("booking_id", mode="before")
    @classmethod
    def keep_raw_booking_id(cls, value):
        # Checked by the service once the caller is authorized
        if value is None or (isinstance(value, (int, str)) and not isinstance(value, bool)):
            return value
        return str(value)


class ConfirmationRequest(_BookingIdModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    class_time: str | None = Field(None, alias="classTime")
    date: str | None = None
    start_time: str | None = Field(None, alias="startTime")
    end_time: str | None = Field(None, alias="endTime")


class AdminCancellationRequest(_BookingIdModel):
    admin_password: str | None = Field(None, alias="adminPassword")


class CancelTokenRequest(_CamelModel):
    token: str | None = None
