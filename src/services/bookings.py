"""
Booking lifecycle: confirmation, self-service cancellation, and admin cancellation.

Each flow is a fixed sequence of side effects against the store, the mail
provider, and the Outlook calendar. The store is the source of truth: its
failures propagate. Mail and calendar failures are logged and the flow moves
on. Nothing is rolled back: a calendar event left behind after its booking
row is deleted is logged, not compensated.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from urllib.parse import quote

from core.config import Settings
from core.database import BookingStore
from core.scheduling import format_date_long, format_time_12, is_cancellable
from core.validation import (
    CONFIRMATION_REQUIRED_FIELDS,
    has_real_email,
    missing_fields,
    parse_booking_id,
)
from models.bookings import Appointment, Booking
from services.calendar import CalendarBridge
from services.credentials import CredentialBroker
from services.email import NotificationDispatcher, TemplateKind

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS AND OUTCOMES
# =============================================================================


class BookingError(Exception):
    """Base class for errors a caller can act on."""

    def __init__(self, message: str, details: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class InvalidRequest(BookingError):
    """Required input missing."""


class Unauthorized(BookingError):
    """Admin credential missing or wrong."""


class BookingNotFound(BookingError):
    """No booking with that id."""


class ConfigurationError(BookingError):
    """Server is missing a setting the flow needs."""


@dataclass
class ConfirmResult:
    email_sent: bool
    calendar_event_created: bool


class CancelStatus(str, Enum):
    INVALID = "invalid"
    NOT_FOUND = "notfound"
    TOO_LATE = "toolate"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class CancelOutcome:
    """Result of a self-service cancellation, rendered as redirect query params."""

    status: CancelStatus
    date: str | None = None
    time: str | None = None
    email: str | None = None
    booking_id: int | None = field(default=None, repr=False)

    def query_params(self) -> dict[str, str]:
        params = {"status": self.status.value}
        for key in ("date", "time", "email"):
            value = getattr(self, key)
            if value:
                params[key] = value
        return params


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ORCHESTRATOR
# =============================================================================


class LifecycleOrchestrator:
    def __init__(
        self,
        store: BookingStore,
        dispatcher: NotificationDispatcher,
        broker: CredentialBroker,
        calendar: CalendarBridge,
        settings: Settings,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.broker = broker
        self.calendar = calendar
        self.settings = settings
        self.clock = clock

    def cancel_url(self, cancel_token: str) -> str:
        return f"{self.settings.public_base_url}/cancel-booking?token={quote(cancel_token, safe='')}"

    @staticmethod
    def _booking_id(value) -> int | None:
        try:
            return parse_booking_id(value)
        except ValueError:
            raise InvalidRequest("Invalid bookingId", ["bookingId"]) from None

    def authenticate(self, admin_password: str | None):
        """
        Check the shared admin password.

        Raises:
            ConfigurationError: no admin password configured on the server
            Unauthorized: password missing or wrong
        """
        if not self.settings.admin_password:
            raise ConfigurationError("Admin password not configured on server")
        # Constant-time comparison to prevent timing attacks
        if not admin_password or not secrets.compare_digest(
            admin_password.encode("utf-8"), self.settings.admin_password.encode("utf-8")
        ):
            raise Unauthorized("Unauthorized")

    # -------------------------------------------------------------------------
    # Calendar steps (isolated: never raise)
    # -------------------------------------------------------------------------

    async def _create_calendar_event(self, appointment: Appointment) -> str | None:
        try:
            access_token = await self.broker.get_access_token()
            return await self.calendar.create_event(access_token, appointment)
        except Exception:
            logger.exception("Outlook calendar create failed")
            return None

    async def _delete_calendar_event(self, event_id: str) -> bool:
        try:
            access_token = await self.broker.get_access_token()
            return await self.calendar.delete_event(access_token, event_id)
        except Exception:
            logger.exception("Outlook calendar delete failed for event %s", event_id)
            return False

    async def _send_cancellation(self, booking: Booking, by_admin: bool) -> bool:
        sent = await self.dispatcher.send(
            TemplateKind.CANCELLATION,
            booking["email"],
            {
                "name": booking["student_name"],
                "date": booking["booking_date"],
                "start_time": booking["booking_time"][:5],
                "by_admin": by_admin,
            },
        )
        if not sent:
            logger.error("Cancellation email for booking %s was not sent", booking["id"])
        return sent

    # -------------------------------------------------------------------------
    # Flows
    # -------------------------------------------------------------------------

    async def confirm(self, request: dict) -> ConfirmResult:
        """
        Send the confirmation email and create the Outlook event for a new booking.

        The booking row already exists. Only missing input or a failed store
        write fails this flow; mail and calendar problems are reported in the
        result.

        Raises:
            InvalidRequest: a required field is missing, or bookingId is not a number
        """
        missing = missing_fields(request, CONFIRMATION_REQUIRED_FIELDS)
        if missing:
            raise InvalidRequest("Missing required fields", missing)

        booking_id = self._booking_id(request["booking_id"])
        appointment: Appointment = {
            "name": request["name"],
            "email": request["email"],
            "phone": request.get("phone"),
            "class_time": request.get("class_time"),
            "date": request["date"],
            "start_time": request["start_time"][:5],
            "end_time": request["end_time"][:5],
        }

        cancel_token = self.store.get_cancel_token(booking_id)
        if cancel_token is None:
            logger.warning("No cancel token for booking %s; sending without cancel link", booking_id)

        # 1. Confirmation email (with .ics invite)
        email_sent = await self.dispatcher.send(
            TemplateKind.CONFIRMATION,
            appointment["email"],
            {
                "name": appointment["name"],
                "date": appointment["date"],
                "start_time": appointment["start_time"],
                "end_time": appointment["end_time"],
                "cancel_url": self.cancel_url(cancel_token) if cancel_token else None,
            },
        )
        if not email_sent:
            logger.error("Confirmation email for booking %s was not sent", booking_id)

        # 2. Outlook event
        event_id = await self._create_calendar_event(appointment)

        # 3. Remember the event so cancellation can remove it
        if event_id:
            if not self.store.set_outlook_event_id(booking_id, event_id):
                logger.warning(
                    "Booking %s no longer exists; calendar event %s is orphaned",
                    booking_id,
                    event_id,
                )

        return ConfirmResult(email_sent=email_sent, calendar_event_created=bool(event_id))

    async def cancel_by_token(self, cancel_token: str | None) -> CancelOutcome:
        """
        Self-service cancellation from the link in the confirmation email.

        Never raises; every outcome, including unexpected failures, maps to a
        CancelStatus.
        """
        if not cancel_token:
            return CancelOutcome(CancelStatus.INVALID)

        try:
            booking = self.store.get_booking_by_token(cancel_token)
            if booking is None:
                return CancelOutcome(CancelStatus.NOT_FOUND)

            formatted_date = format_date_long(booking["booking_date"])
            formatted_time = format_time_12(booking["booking_time"])

            if not is_cancellable(
                booking["booking_date"],
                booking["booking_time"],
                self.settings.facility_utc_offset_hours,
                self.clock(),
                self.settings.cancellation_lead_hours,
            ):
                return CancelOutcome(
                    CancelStatus.TOO_LATE,
                    date=formatted_date,
                    time=formatted_time,
                    booking_id=booking["id"],
                )

            # 1. Email goes out before the row is removed
            if has_real_email(booking["email"]):
                await self._send_cancellation(booking, by_admin=False)

            # 2. Delete the booking; failure here surfaces as an error even
            #    though the email already went out
            if not self.store.delete_booking(booking["id"]):
                logger.warning("Booking %s was already deleted", booking["id"])

            # 3. Remove the Outlook event (an orphaned event is only logged)
            if booking["outlook_event_id"]:
                await self._delete_calendar_event(booking["outlook_event_id"])

            logger.info("Booking %s cancelled by student", booking["id"])
            return CancelOutcome(
                CancelStatus.SUCCESS,
                date=formatted_date,
                time=formatted_time,
                email=booking["email"],
                booking_id=booking["id"],
            )

        except Exception:
            logger.exception("Self-service cancellation failed")
            return CancelOutcome(CancelStatus.ERROR)

    async def cancel_by_admin(self, booking_id: int | str | None, admin_password: str | None) -> bool:
        """
        Cancel a booking on the host's behalf. No lead-time check applies.

        Returns True if the booking row was deleted.

        Raises:
            ConfigurationError: admin password not configured
            Unauthorized: bad admin password (checked before anything else)
            InvalidRequest: booking id missing or not a number
            BookingNotFound: no such booking
        """
        self.authenticate(admin_password)

        booking_id = self._booking_id(booking_id)
        if booking_id is None:
            raise InvalidRequest("Missing bookingId", ["bookingId"])

        booking = self.store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound("Booking not found")

        # 1. Notify the student (admin blocks have nobody to notify)
        if not booking["is_admin_block"] and has_real_email(booking["email"]):
            await self._send_cancellation(booking, by_admin=True)

        # 2. Remove the Outlook event
        if booking["outlook_event_id"]:
            await self._delete_calendar_event(booking["outlook_event_id"])

        # 3. Delete the booking row; store errors propagate
        deleted = self.store.delete_booking(booking_id)
        if deleted:
            logger.info("Booking %s cancelled by admin", booking_id)
        else:
            logger.warning("Booking %s disappeared before it could be deleted", booking_id)
        return deleted
