"""
Input validation for booking requests.
"""

from core.config import NO_EMAIL

# Field name -> label used in error details
CONFIRMATION_REQUIRED_FIELDS = {
    "booking_id": "bookingId",
    "name": "name",
    "email": "email",
    "date": "date",
    "start_time": "startTime",
    "end_time": "endTime",
}


def missing_fields(payload: dict, required: dict[str, str]) -> list[str]:
    """
    Return the labels of required fields that are absent or blank.

    Zero is a valid value (e.g. a booking id of 0 is not "missing").
    """
    missing = []
    for field_name, label in required.items():
        value = payload.get(field_name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(label)
    return missing


def has_real_email(email: str | None) -> bool:
    """Check if this is a deliverable address rather than the admin-block placeholder."""
    return bool(email) and email.strip().upper() != NO_EMAIL


def parse_booking_id(value) -> int | None:
    """
    Coerce a client-supplied booking id to an integer.

    Returns None for a missing or blank value. Raises ValueError for anything
    that is not a whole number.
    """
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.lstrip("-").isdigit():
            return int(text)
    raise ValueError(f"Invalid booking id: {value!r}")
