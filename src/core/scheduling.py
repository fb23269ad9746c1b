"""
Appointment time math: the cancellation lead-time rule, reminder windows,
and display formatting.

Booking dates and times are stored as facility wall-clock strings with no
timezone. The facility runs on a fixed UTC offset (no daylight saving), so
converting to an absolute instant is a plain offset shift.
"""

from datetime import date, datetime, time, timedelta, timezone


def facility_tz(utc_offset_hours: int) -> timezone:
    return timezone(timedelta(hours=utc_offset_hours))


def parse_date(date_str: str) -> date:
    return datetime.strptime(date_str, "%Y-%m-%d").date()


def parse_time(time_str: str) -> time:
    """Parse 'HH:MM' or 'HH:MM:SS' (seconds are ignored)."""
    return datetime.strptime(time_str[:5], "%H:%M").time()


def appointment_instant(date_str: str, time_str: str, utc_offset_hours: int) -> datetime:
    """Absolute (UTC-aware) instant of a facility-local date and time."""
    local = datetime.combine(parse_date(date_str), parse_time(time_str))
    return local.replace(tzinfo=facility_tz(utc_offset_hours))


def is_cancellable(
    date_str: str,
    time_str: str,
    utc_offset_hours: int,
    now: datetime,
    lead_hours: int = 2,
) -> bool:
    """
    True if more than `lead_hours` remain before the appointment.

    Exactly `lead_hours` away (or less) is too late.
    """
    remaining = appointment_instant(date_str, time_str, utc_offset_hours) - now
    return remaining > timedelta(hours=lead_hours)


def reminder_target(now: datetime, utc_offset_hours: int, lead_hours: int = 24) -> tuple[str, int]:
    """
    Facility-local date and hour that lie `lead_hours` ahead of now.

    e.g. now = 2:47 PM local -> tomorrow's date and hour 14.
    """
    target = (now + timedelta(hours=lead_hours)).astimezone(facility_tz(utc_offset_hours))
    return target.date().isoformat(), target.hour


def add_minutes(time_str: str, minutes: int) -> str:
    """Add minutes to an 'HH:MM' time, wrapping past midnight."""
    t = parse_time(time_str)
    total = t.hour * 60 + t.minute + minutes
    return f"{(total // 60) % 24:02d}:{total % 60:02d}"


def format_date_long(date_str: str) -> str:
    """Format date as 'Monday, March 10, 2025' (platform-safe, no zero-padding)."""
    d = parse_date(date_str)
    return f"{d.strftime('%A')}, {d.strftime('%B')} {d.day}, {d.year}"


def format_time_12(time_str: str) -> str:
    """Format 'HH:MM' as '2:00 PM'."""
    t = parse_time(time_str)
    suffix = "PM" if t.hour >= 12 else "AM"
    hour = t.hour % 12 or 12
    return f"{hour}:{t.minute:02d} {suffix}"


def format_time_range(start_time: str, end_time: str) -> str:
    return f"{format_time_12(start_time)} – {format_time_12(end_time)}"
