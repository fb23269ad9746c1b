"""
24-hour reminder sweep.

Runs hourly. Each run looks one day ahead to the same facility-local hour,
emails every student booked in that hour who has not been reminded yet, and
logs the send. The reminder_log UNIQUE constraint is what guarantees a
single logged reminder per booking; the `reminded` filter only avoids most
duplicate emails when sweeps overlap. A crash between send and log can
produce a second email, never a second log entry.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from core.config import Settings
from core.database import BookingStore
from core.scheduling import add_minutes, reminder_target
from core.validation import has_real_email
from models.bookings import SweepResult
from services.email import NotificationDispatcher, TemplateKind

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReminderScheduler:
    def __init__(
        self,
        store: BookingStore,
        dispatcher: NotificationDispatcher,
        settings: Settings,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.settings = settings
        self.clock = clock

    async def run(self) -> SweepResult:
        """Run one sweep and report how many bookings were checked and reminded."""
        now = self.clock()
        target_date, target_hour = reminder_target(
            now, self.settings.facility_utc_offset_hours, self.settings.reminder_lead_hours
        )

        candidates = self.store.find_reminder_candidates(target_date, target_hour)
        to_remind = [c for c in candidates if not c["reminded"]]
        logger.info(
            "Reminder sweep for %s %02d:00: %d booking(s), %d not yet reminded",
            target_date,
            target_hour,
            len(candidates),
            len(to_remind),
        )

        reminded = 0
        for booking in to_remind:
            if not has_real_email(booking["email"]):
                continue

            start_time = booking["booking_time"][:5]
            sent = await self.dispatcher.send(
                TemplateKind.REMINDER,
                booking["email"],
                {
                    "name": booking["student_name"],
                    "date": booking["booking_date"],
                    "start_time": start_time,
                    "end_time": add_minutes(start_time, self.settings.appointment_minutes),
                },
            )
            if not sent:
                logger.error("Failed to send reminder for booking %s", booking["id"])
                continue

            if not self.store.record_reminder(booking["id"], now.isoformat()):
                logger.warning(
                    "Booking %s was reminded by a concurrent sweep", booking["id"]
                )
            reminded += 1

        return {"checked": len(to_remind), "reminded": reminded}
