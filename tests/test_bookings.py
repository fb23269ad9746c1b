"""Tests for the booking lifecycle flows."""

import sqlite3
from unittest.mock import patch

import pytest

from services.bookings import (
    BookingNotFound,
    CancelStatus,
    ConfigurationError,
    InvalidRequest,
    LifecycleOrchestrator,
    Unauthorized,
)
from services.credentials import CredentialError
from services.email import TemplateKind

# Appointment on 2025-03-10 14:00 local is 21:00 UTC
EARLY = "2025-03-09T12:00:00"
TOO_LATE = "2025-03-10T19:30:00"


@pytest.fixture
def orchestrator(store, dispatcher, broker, calendar, settings, clock_at):
    return LifecycleOrchestrator(
        store=store,
        dispatcher=dispatcher,
        broker=broker,
        calendar=calendar,
        settings=settings,
        clock=clock_at(EARLY),
    )


def confirmation_request(booking_id: int, **overrides) -> dict:
    request = {
        "booking_id": booking_id,
        "name": "Ada Lovelace",
        "email": "ada@example.edu",
        "phone": "555-0100",
        "class_time": "MWF 10:00",
        "date": "2025-03-10",
        "start_time": "14:00",
        "end_time": "14:30",
    }
    request.update(overrides)
    return request


class TestConfirm:
    @pytest.mark.asyncio
    async def test_sends_email_then_creates_event(self, orchestrator, store, dispatcher, calendar, make_booking):
        booking_id = make_booking(cancel_token="tok-abc")
        order = []
        dispatcher.send.side_effect = lambda *a: order.append("email") or True
        calendar.create_event.side_effect = lambda *a: order.append("calendar") or "event-123"

        result = await orchestrator.confirm(confirmation_request(booking_id))

        assert result.email_sent and result.calendar_event_created
        assert order == ["email", "calendar"]
        kind, recipient, fields = dispatcher.send.call_args.args
        assert kind == TemplateKind.CONFIRMATION
        assert recipient == "ada@example.edu"
        assert fields["cancel_url"] == "https://api.example.edu/cancel-booking?token=tok-abc"
        assert store.get_booking(booking_id)["outlook_event_id"] == "event-123"

    @pytest.mark.asyncio
    async def test_missing_fields_rejected_without_side_effects(self, orchestrator, dispatcher, broker, make_booking):
        booking_id = make_booking()

        with pytest.raises(InvalidRequest) as exc_info:
            await orchestrator.confirm(confirmation_request(booking_id, email="", end_time=None))

        assert exc_info.value.details == ["email", "endTime"]
        dispatcher.send.assert_not_called()
        broker.get_access_token.assert_not_called()

    @pytest.mark.asyncio
    async def test_calendar_failure_is_isolated(self, orchestrator, store, broker, calendar, make_booking):
        booking_id = make_booking()
        broker.get_access_token.side_effect = CredentialError("invalid_grant")

        with patch.object(store, "set_outlook_event_id") as set_event_id:
            result = await orchestrator.confirm(confirmation_request(booking_id))

        assert result.email_sent
        assert not result.calendar_event_created
        calendar.create_event.assert_not_called()
        set_event_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_event_is_not_stored(self, orchestrator, store, calendar, make_booking):
        booking_id = make_booking()
        calendar.create_event.return_value = None

        with patch.object(store, "set_outlook_event_id") as set_event_id:
            result = await orchestrator.confirm(confirmation_request(booking_id))

        assert not result.calendar_event_created
        set_event_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_email_failure_does_not_stop_calendar(self, orchestrator, dispatcher, calendar, make_booking):
        booking_id = make_booking()
        dispatcher.send.return_value = False

        result = await orchestrator.confirm(confirmation_request(booking_id))

        assert not result.email_sent
        assert result.calendar_event_created
        calendar.create_event.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_cancel_token_no_link(self, orchestrator, dispatcher):
        await orchestrator.confirm(confirmation_request(999))

        fields = dispatcher.send.call_args.args[2]
        assert fields["cancel_url"] is None

    @pytest.mark.asyncio
    async def test_event_id_write_failure_propagates(self, orchestrator, store, make_booking):
        booking_id = make_booking()

        with patch.object(store, "set_outlook_event_id", side_effect=sqlite3.OperationalError("locked")):
            with pytest.raises(sqlite3.OperationalError):
                await orchestrator.confirm(confirmation_request(booking_id))


class TestCancelByToken:
    @pytest.mark.asyncio
    async def test_missing_token(self, orchestrator):
        outcome = await orchestrator.cancel_by_token(None)
        assert outcome.query_params() == {"status": "invalid"}

    @pytest.mark.asyncio
    async def test_unknown_token_deletes_nothing(self, orchestrator, store, dispatcher, make_booking):
        booking_id = make_booking()

        outcome = await orchestrator.cancel_by_token("no-such-token")

        assert outcome.status == CancelStatus.NOT_FOUND
        assert store.get_booking(booking_id) is not None
        dispatcher.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_inside_lead_time_is_denied(self, orchestrator, store, dispatcher, make_booking, clock_at):
        booking_id = make_booking(cancel_token="tok")
        orchestrator.clock = clock_at(TOO_LATE)

        outcome = await orchestrator.cancel_by_token("tok")

        assert outcome.query_params() == {
            "status": "toolate",
            "date": "Monday, March 10, 2025",
            "time": "2:00 PM",
        }
        assert store.get_booking(booking_id) is not None
        dispatcher.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_success_emails_before_deleting(self, orchestrator, store, dispatcher, calendar, make_booking):
        booking_id = make_booking(cancel_token="tok")
        store.set_outlook_event_id(booking_id, "event-9")
        seen_at_send = []
        dispatcher.send.side_effect = lambda *a: seen_at_send.append(store.get_booking(booking_id)) or True

        outcome = await orchestrator.cancel_by_token("tok")

        assert outcome.query_params() == {
            "status": "success",
            "date": "Monday, March 10, 2025",
            "time": "2:00 PM",
            "email": "ada@example.edu",
        }
        assert seen_at_send[0] is not None  # row still there when the email went out
        assert store.get_booking(booking_id) is None
        kind, _, fields = dispatcher.send.call_args.args
        assert kind == TemplateKind.CANCELLATION
        assert fields["by_admin"] is False
        calendar.delete_event.assert_awaited_once_with("access-token", "event-9")

    @pytest.mark.asyncio
    async def test_delete_failure_reports_error(self, orchestrator, store, dispatcher, make_booking):
        make_booking(cancel_token="tok")

        with patch.object(store, "delete_booking", side_effect=sqlite3.OperationalError("locked")):
            outcome = await orchestrator.cancel_by_token("tok")

        assert outcome.status == CancelStatus.ERROR
        dispatcher.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_calendar_delete_failure_still_succeeds(self, orchestrator, store, broker, make_booking):
        booking_id = make_booking(cancel_token="tok")
        store.set_outlook_event_id(booking_id, "event-9")
        broker.get_access_token.side_effect = CredentialError("invalid_grant")

        outcome = await orchestrator.cancel_by_token("tok")

        assert outcome.status == CancelStatus.SUCCESS
        assert store.get_booking(booking_id) is None


class TestCancelByAdmin:
    @pytest.mark.asyncio
    async def test_wrong_password_checked_before_data_access(self, orchestrator, store, make_booking):
        booking_id = make_booking()

        with patch.object(store, "get_booking") as get_booking:
            with pytest.raises(Unauthorized):
                await orchestrator.cancel_by_admin(booking_id, "wrong")
            with pytest.raises(Unauthorized):
                await orchestrator.cancel_by_admin(None, None)

        get_booking.assert_not_called()

    @pytest.mark.asyncio
    async def test_unconfigured_password(self, store, dispatcher, broker, calendar, settings):
        from dataclasses import replace

        orchestrator = LifecycleOrchestrator(
            store, dispatcher, broker, calendar, replace(settings, admin_password="")
        )
        with pytest.raises(ConfigurationError):
            await orchestrator.cancel_by_admin(1, "")

    @pytest.mark.asyncio
    async def test_missing_booking_id(self, orchestrator):
        with pytest.raises(InvalidRequest):
            await orchestrator.cancel_by_admin(None, "correct horse")

    @pytest.mark.asyncio
    async def test_unknown_booking(self, orchestrator):
        with pytest.raises(BookingNotFound):
            await orchestrator.cancel_by_admin(999, "correct horse")

    @pytest.mark.asyncio
    async def test_ignores_lead_time(self, orchestrator, store, dispatcher, calendar, make_booking, clock_at):
        booking_id = make_booking()
        store.set_outlook_event_id(booking_id, "event-9")
        orchestrator.clock = clock_at(TOO_LATE)

        assert await orchestrator.cancel_by_admin(booking_id, "correct horse")

        assert store.get_booking(booking_id) is None
        fields = dispatcher.send.call_args.args[2]
        assert fields["by_admin"] is True
        calendar.delete_event.assert_awaited_once_with("access-token", "event-9")

    @pytest.mark.asyncio
    async def test_admin_block_without_event(self, orchestrator, store, dispatcher, broker, calendar, make_booking):
        booking_id = make_booking(is_admin_block=True, email="N/A")

        assert await orchestrator.cancel_by_admin(booking_id, "correct horse")

        dispatcher.send.assert_not_called()
        broker.get_access_token.assert_not_called()
        calendar.delete_event.assert_not_called()
        assert store.get_booking(booking_id) is None

    @pytest.mark.asyncio
    async def test_calendar_failure_does_not_block_delete(self, orchestrator, store, calendar, make_booking):
        booking_id = make_booking()
        store.set_outlook_event_id(booking_id, "event-9")
        calendar.delete_event.side_effect = RuntimeError("graph down")

        assert await orchestrator.cancel_by_admin(booking_id, "correct horse")
        assert store.get_booking(booking_id) is None

    @pytest.mark.asyncio
    async def test_row_delete_failure_propagates(self, orchestrator, store, make_booking):
        booking_id = make_booking()

        with patch.object(store, "delete_booking", side_effect=sqlite3.OperationalError("locked")):
            with pytest.raises(sqlite3.OperationalError):
                await orchestrator.cancel_by_admin(booking_id, "correct horse")


class TestBookingIdInput:
    @pytest.mark.asyncio
    async def test_password_checked_before_id_is_parsed(self, orchestrator):
        with pytest.raises(Unauthorized):
            await orchestrator.cancel_by_admin("not-a-number", "wrong")

    @pytest.mark.asyncio
    async def test_malformed_admin_id(self, orchestrator):
        with pytest.raises(InvalidRequest) as exc_info:
            await orchestrator.cancel_by_admin("12b", "correct horse")
        assert exc_info.value.details == ["bookingId"]

    @pytest.mark.asyncio
    async def test_blank_admin_id_is_missing(self, orchestrator):
        with pytest.raises(InvalidRequest, match="Missing"):
            await orchestrator.cancel_by_admin("  ", "correct horse")

    @pytest.mark.asyncio
    async def test_numeric_string_confirmation_id(self, orchestrator, store, make_booking):
        booking_id = make_booking()

        result = await orchestrator.confirm(confirmation_request(str(booking_id)))

        assert result.calendar_event_created
        assert store.get_booking(booking_id)["outlook_event_id"] == "event-123"

    @pytest.mark.asyncio
    async def test_malformed_confirmation_id(self, orchestrator, dispatcher):
        with pytest.raises(InvalidRequest, match="Invalid bookingId"):
            await orchestrator.confirm(confirmation_request("seven"))
        dispatcher.send.assert_not_called()
