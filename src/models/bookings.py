"""
Data models for bookings and reminder sweeps.

Rows come back from SQLite as plain dicts; these TypedDicts describe their shape.
"""

from typing import TypedDict


class Booking(TypedDict):
    """One scheduled office-hours slot."""
    id: int
    student_name: str
    email: str  # "N/A" on admin blocks
    phone: str | None
    class_time: str | None
    booking_date: str  # YYYY-MM-DD, facility-local
    booking_time: str  # HH:MM or HH:MM:SS, facility-local
    is_admin_block: bool
    outlook_event_id: str | None
    cancel_token: str


class Appointment(TypedDict):
    """Details of a confirmed appointment, as sent by the booking page."""
    name: str
    email: str
    phone: str | None
    class_time: str | None
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM


class ReminderCandidate(TypedDict):
    """Booking in the reminder window, with its reminder-log status."""
    id: int
    student_name: str
    email: str
    booking_date: str
    booking_time: str
    is_admin_block: bool
    reminded: bool


class SweepResult(TypedDict):
    """Outcome of one reminder sweep."""
    checked: int
    reminded: int
