"""
Outlook calendar events for confirmed appointments, via the MS Graph REST API.
"""

import html
import logging

import httpx

from core.config import GRAPH_API_URL, Settings
from models.bookings import Appointment

logger = logging.getLogger(__name__)


class CalendarBridge:
    """Creates and removes events on the host's Outlook calendar."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    @property
    def events_url(self) -> str:
        return f"{GRAPH_API_URL}/users/{self.settings.calendar_user_email}/calendar/events"

    def build_event(self, appointment: Appointment) -> dict:
        """Graph event payload for an appointment."""
        body_lines = [
            f"<b>Student:</b> {html.escape(appointment['name'])}",
            f"<b>Email:</b> {html.escape(appointment['email'])}",
            f"<b>Phone:</b> {html.escape(appointment.get('phone') or '')}",
            f"<b>Class Time:</b> {html.escape(appointment.get('class_time') or '')}",
        ]
        tz = self.settings.facility_timezone
        return {
            "subject": f"Office Hours: {appointment['name']}",
            "body": {"contentType": "HTML", "content": "<br>".join(body_lines)},
            "start": {"dateTime": f"{appointment['date']}T{appointment['start_time'][:5]}:00", "timeZone": tz},
            "end": {"dateTime": f"{appointment['date']}T{appointment['end_time'][:5]}:00", "timeZone": tz},
            "location": {"displayName": self.settings.location},
            "reminderMinutesBeforeStart": self.settings.calendar_reminder_minutes,
            # No attendees: the student already gets an invite with the confirmation email
        }

    async def create_event(self, access_token: str, appointment: Appointment) -> str | None:
        """
        Create a calendar event for the appointment.

        Returns the Graph event id, or None if Graph did not accept it.
        """
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    self.events_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                    json=self.build_event(appointment),
                )
        except httpx.HTTPError as e:
            logger.error("Graph event create failed: %s", e)
            return None

        if response.status_code not in (200, 201):
            logger.error("Graph API error (%s): %s", response.status_code, response.text)
            return None

        try:
            event = response.json()
        except ValueError:
            event = None
        event_id = event.get("id") if isinstance(event, dict) else None
        if not event_id:
            logger.error("Graph accepted the event but returned no id: %s", response.text[:200])
            return None

        logger.info("Created calendar event %s", event_id)
        return event_id

    async def delete_event(self, access_token: str, event_id: str) -> bool:
        """
        Delete a calendar event.

        An event that is already gone counts as deleted. Other failures are
        logged and reported as False; they never raise.
        """
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.delete(
                    f"{self.events_url}/{event_id}",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error("Graph event delete failed for %s: %s", event_id, e)
            return False

        if response.status_code == 404:
            logger.info("Calendar event %s already removed", event_id)
            return True
        if not response.is_success:
            logger.error("Graph delete error (%s): %s", response.status_code, response.text)
            return False

        logger.info("Deleted calendar event %s", event_id)
        return True
