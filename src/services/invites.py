"""
iCalendar (.ics) invites attached to confirmation emails.
"""

import uuid
from datetime import datetime, timezone

from core.config import Settings
from core.scheduling import add_minutes


def _escape_text(value: str) -> str:
    """Escape an iCalendar TEXT value (RFC 5545 3.3.11)."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def generate_ics(
    settings: Settings,
    name: str,
    date_str: str,
    start_time: str,
    end_time: str | None = None,
    uid: str | None = None,
    now: datetime | None = None,
) -> str:
    """
    Build a VCALENDAR with one VEVENT in the facility timezone.

    Each call gets a fresh UID unless one is passed in. The event carries a
    one-hour-before display alarm.
    """
    end_time = end_time or add_minutes(start_time, settings.appointment_minutes)
    uid = uid or str(uuid.uuid4())
    now = now or datetime.now(timezone.utc)

    day = date_str.replace("-", "")
    start = start_time[:5].replace(":", "") + "00"
    end = end_time[:5].replace(":", "") + "00"
    stamp = now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    tz = settings.facility_timezone
    location = _escape_text(settings.location)
    description = _escape_text(
        f"Office hours appointment for {name}.\nLocation: {settings.location}\n"
        f"To cancel, please do so at least {settings.cancellation_lead_hours} hours in advance."
    )

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Office Hours Booking//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"DTSTART;TZID={tz}:{day}T{start}",
        f"DTEND;TZID={tz}:{day}T{end}",
        f"DTSTAMP:{stamp}",
        f"UID:{uid}@{settings.invite_domain}",
        f"SUMMARY:{_escape_text(f'Office Hours - {settings.host_name}')}",
        f"LOCATION:{location}",
        f"DESCRIPTION:{description}",
        "STATUS:CONFIRMED",
        "BEGIN:VALARM",
        "TRIGGER:-PT1H",
        "ACTION:DISPLAY",
        "DESCRIPTION:Office hours appointment in 1 hour",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines)
