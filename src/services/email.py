"""
Transactional email (confirmation, reminder, cancellation) sent through MS Graph.
"""

import html
import logging
from enum import Enum

from msgraph import GraphServiceClient
from msgraph.generated.models.body_type import BodyType
from msgraph.generated.models.email_address import EmailAddress
from msgraph.generated.models.file_attachment import FileAttachment
from msgraph.generated.models.item_body import ItemBody
from msgraph.generated.models.message import Message
from msgraph.generated.models.recipient import Recipient
from msgraph.generated.users.item.send_mail.send_mail_post_request_body import (
    SendMailPostRequestBody,
)

from core.config import Settings
from core.graph_client import get_graph_client
from core.scheduling import format_date_long, format_time_12, format_time_range
from services.invites import generate_ics

logger = logging.getLogger(__name__)


class TemplateKind(str, Enum):
    CONFIRMATION = "confirmation"
    REMINDER = "reminder"
    CANCELLATION = "cancellation"


# =============================================================================
# TEMPLATES
# =============================================================================


def _details_table(rows: list[tuple[str, str]]) -> str:
    cells = []
    for i, (label, value) in enumerate(rows):
        shade = ' style="background:#f7fafc;"' if i % 2 else ""
        cells.append(
            f'<tr{shade}><td style="padding: 8px; font-weight: bold; width: 120px;">{label}</td>'
            f'<td style="padding: 8px;">{html.escape(value)}</td></tr>'
        )
    return (
        '<table style="border-collapse: collapse; width: 100%; margin: 20px 0;">'
        + "".join(cells)
        + "</table>"
    )


def _wrap(settings: Settings, heading: str, color: str, paragraphs: list[str]) -> str:
    footer = html.escape(f"Office Hours · {settings.location}")
    return (
        '<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: {color};">{heading}</h2>'
        + "".join(paragraphs)
        + f'<p style="color: #718096; font-size: 0.9em; margin-top: 24px;">{footer}</p>'
        "</div>"
    )


def _contact_line(settings: Settings) -> str:
    host = html.escape(settings.host_name)
    if settings.contact_email:
        email = html.escape(settings.contact_email)
        return f'{host} at <a href="mailto:{email}">{email}</a>'
    return host


def render_confirmation(settings: Settings, fields: dict) -> tuple[str, str]:
    """Subject and HTML body for a booking confirmation."""
    formatted_date = format_date_long(fields["date"])
    lead = settings.cancellation_lead_hours
    cancel_url = fields.get("cancel_url")

    if cancel_url:
        cancel_section = (
            f'<p style="margin-top: 16px;"><a href="{html.escape(cancel_url, quote=True)}" '
            'style="display: inline-block; background: #fed7d7; color: #742a2a; padding: 10px 20px; '
            'border-radius: 6px; text-decoration: none; font-weight: 600;">Cancel this appointment</a></p>'
            f'<p style="color: #718096; font-size: 0.85em;">Cancellations must be made at least '
            f"{lead} hours before your appointment.</p>"
        )
    else:
        cancel_section = f"<p>To cancel, contact {_contact_line(settings)} at least {lead} hours in advance.</p>"

    body = _wrap(
        settings,
        "Your appointment is confirmed",
        "#2d3748",
        [
            f"<p>Hi {html.escape(fields['name'])},</p>",
            f"<p>Your office hours appointment with {html.escape(settings.host_name)} has been scheduled:</p>",
            _details_table([
                ("Date", formatted_date),
                ("Time", format_time_range(fields["start_time"], fields["end_time"])),
                ("Location", settings.location),
            ]),
            "<p>A calendar invite is attached. Open it to add this appointment to your calendar.</p>",
            cancel_section,
        ],
    )
    return f"Office Hours Confirmed — {formatted_date}", body


def render_reminder(settings: Settings, fields: dict) -> tuple[str, str]:
    """Subject and HTML body for the 24-hour reminder."""
    formatted_date = format_date_long(fields["date"])
    body = _wrap(
        settings,
        "Office hours reminder",
        "#2d3748",
        [
            f"<p>Hi {html.escape(fields['name'])},</p>",
            "<p>This is a reminder that you have an office hours appointment <strong>tomorrow</strong>:</p>",
            _details_table([
                ("Date", formatted_date),
                ("Time", format_time_range(fields["start_time"], fields["end_time"])),
                ("Location", settings.location),
            ]),
            '<p style="background: #ebf8ff; border-left: 4px solid #3182ce; padding: 12px; border-radius: 4px;">'
            "If you need to cancel, please do so now so another student can take your slot. "
            f"Contact {_contact_line(settings)}.</p>",
        ],
    )
    return f"Reminder: Office Hours Tomorrow — {formatted_date}", body


def render_cancellation(settings: Settings, fields: dict) -> tuple[str, str]:
    """Subject and HTML body for a cancellation notice (no cancel link)."""
    formatted_date = format_date_long(fields["date"])
    host = html.escape(settings.host_name)
    if fields.get("by_admin"):
        intro = f"<p>Your office hours appointment has been cancelled by {host}:</p>"
        outro = f"<p>Please rebook at your convenience on the booking page, or contact {_contact_line(settings)}.</p>"
    else:
        intro = "<p>Your office hours appointment has been cancelled as requested:</p>"
        outro = (
            "<p>The slot is now available for other students. If you would like to rebook, "
            f"please visit the booking page or contact {_contact_line(settings)}.</p>"
        )
    body = _wrap(
        settings,
        "Your appointment has been cancelled",
        "#742a2a",
        [
            f"<p>Hi {html.escape(fields['name'])},</p>",
            intro,
            _details_table([
                ("Date", formatted_date),
                ("Time", format_time_12(fields["start_time"])),
                ("Location", settings.location),
            ]),
            outro,
        ],
    )
    return f"Office Hours Appointment Cancelled — {formatted_date}", body


RENDERERS = {
    TemplateKind.CONFIRMATION: render_confirmation,
    TemplateKind.REMINDER: render_reminder,
    TemplateKind.CANCELLATION: render_cancellation,
}


# =============================================================================
# DISPATCH
# =============================================================================


class NotificationDispatcher:
    """
    Sends templated email from the configured mailbox.

    send() never raises: a rejected or failed send is logged and reported
    as False so booking flows can carry on.
    """

    def __init__(self, settings: Settings, graph: GraphServiceClient | None = None):
        self.settings = settings
        self._graph = graph

    @property
    def graph(self) -> GraphServiceClient:
        if self._graph is None:
            self._graph = get_graph_client(self.settings)
        return self._graph

    def build_message(self, kind: TemplateKind, recipient: str, fields: dict) -> Message:
        subject, body_html = RENDERERS[kind](self.settings, fields)
        attachments = []
        if kind == TemplateKind.CONFIRMATION:
            ics = generate_ics(
                self.settings,
                name=fields["name"],
                date_str=fields["date"],
                start_time=fields["start_time"],
                end_time=fields.get("end_time"),
            )
            attachments.append(
                FileAttachment(
                    odata_type="#microsoft.graph.fileAttachment",
                    name="office-hours.ics",
                    content_type="text/calendar",
                    content_bytes=ics.encode("utf-8"),
                )
            )

        return Message(
            subject=subject,
            from_=Recipient(
                email_address=EmailAddress(
                    address=self.settings.mail_sender,
                    name=self.settings.mail_sender_name or None,
                )
            ),
            body=ItemBody(content_type=BodyType.Html, content=body_html),
            to_recipients=[Recipient(email_address=EmailAddress(address=recipient))],
            attachments=attachments or None,
        )

    async def send(self, kind: TemplateKind, recipient: str, fields: dict) -> bool:
        """Send one email. Returns True if Graph accepted it."""
        try:
            message = self.build_message(kind, recipient, fields)
            request_body = SendMailPostRequestBody(message=message, save_to_sent_items=True)
            await self.graph.users.by_user_id(self.settings.mail_sender).send_mail.post(request_body)
        except Exception as e:
            logger.error("Failed to send %s email to %s: %s", kind.value, recipient, e)
            return False

        logger.info("Sent %s email to %s", kind.value, recipient)
        return True
