"""Booking confirmation and cancellation endpoints."""

import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from api.dependencies import get_orchestrator
from api.logging import RequestLog, log_request, start_request_log
from api.models import (
    AdminCancellationRequest,
    CancelTokenRequest,
    ConfirmationRequest,
    ConfirmationResponse,
    ErrorCodes,
    SuccessResponse,
)
from core.config import Settings, get_settings
from core.validation import parse_booking_id
from services.bookings import (
    BookingError,
    BookingNotFound,
    CancelOutcome,
    CancelStatus,
    ConfigurationError,
    InvalidRequest,
    LifecycleOrchestrator,
    Unauthorized,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_STATUS = {
    InvalidRequest: (status.HTTP_400_BAD_REQUEST, ErrorCodes.INVALID_REQUEST),
    Unauthorized: (status.HTTP_401_UNAUTHORIZED, ErrorCodes.UNAUTHORIZED),
    BookingNotFound: (status.HTTP_404_NOT_FOUND, ErrorCodes.NOT_FOUND),
    ConfigurationError: (status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCodes.INTERNAL_ERROR),
}


def http_error(status_code: int, error: str, code: str, details: list[str] | None = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": error, "code": code, "details": details or []},
    )


def booking_http_error(e: BookingError) -> HTTPException:
    status_code, code = ERROR_STATUS[type(e)]
    return http_error(status_code, e.message, code, e.details)


def record_http_error(request_log: RequestLog, e: HTTPException):
    request_log.finish(e.status_code)
    if isinstance(e.detail, dict):
        request_log.error_code = e.detail.get("code")
        request_log.error_message = e.detail.get("error")
        for detail in e.detail.get("details", []):
            request_log.details.append(("validation_error", detail))
    else:
        request_log.error_message = str(e.detail)


def write_request_log(request_log: RequestLog, settings: Settings):
    try:
        log_request(request_log, settings.db_path)
    except Exception as e:
        # Don't fail the request if logging fails
        logger.warning("Could not write request log: %s", e)


def logged_booking_id(value) -> int | None:
    """Booking id for the request log, or None when the client sent garbage."""
    try:
        return parse_booking_id(value)
    except ValueError:
        return None


def build_redirect_url(base_url: str, params: dict[str, str]) -> str:
    """Add params to base_url's query string, replacing any with the same name."""
    parts = urlsplit(base_url)
    query = dict(parse_qsl(parts.query))
    query.update(params)
    return urlunsplit(parts._replace(query=urlencode(query)))


# =============================================================================
# SELF-SERVICE CANCELLATION
# =============================================================================


async def _cancel_and_redirect(
    request: Request,
    token: str | None,
    orchestrator: LifecycleOrchestrator,
    settings: Settings,
) -> RedirectResponse:
    request_log = start_request_log(request)
    try:
        outcome = await orchestrator.cancel_by_token(token)
    except Exception:
        logger.exception("cancel-booking failed")
        outcome = CancelOutcome(CancelStatus.ERROR)

    request_log.booking_id = outcome.booking_id
    request_log.finish(status.HTTP_302_FOUND)
    if outcome.status != CancelStatus.SUCCESS:
        request_log.error_code = outcome.status.value
    write_request_log(request_log, settings)

    return RedirectResponse(
        build_redirect_url(settings.cancel_page_url, outcome.query_params()),
        status_code=status.HTTP_302_FOUND,
    )


@router.get("/cancel-booking")
async def cancel_booking_link(
    request: Request,
    token: str | None = None,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
):
    """Cancel a booking from the link in its confirmation email."""
    return await _cancel_and_redirect(request, token, orchestrator, settings)


@router.post("/cancel-booking")
async def cancel_booking_json(
    request: Request,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
):
    """Cancel a booking by token sent as a JSON body."""
    try:
        payload = CancelTokenRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        logger.warning("cancel-booking received an unreadable body")
        return RedirectResponse(
            build_redirect_url(settings.cancel_page_url, {"status": CancelStatus.ERROR.value}),
            status_code=status.HTTP_302_FOUND,
        )
    return await _cancel_and_redirect(request, payload.token, orchestrator, settings)


# =============================================================================
# CONFIRMATION
# =============================================================================


@router.post("/send-booking-confirmation", response_model=ConfirmationResponse)
async def send_booking_confirmation(
    request: Request,
    payload: ConfirmationRequest | None = None,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
):
    """
    Email the confirmation (with calendar invite) and create the Outlook event.

    Succeeds whenever the input is complete; calendarEventCreated reports
    whether the Outlook sync worked.
    """
    payload = payload or ConfirmationRequest()
    request_log = start_request_log(request)
    request_log.booking_id = logged_booking_id(payload.booking_id)

    try:
        try:
            result = await orchestrator.confirm(payload.model_dump())
        except BookingError as e:
            raise booking_http_error(e)

        request_log.finish(status.HTTP_200_OK)
        if not result.email_sent:
            request_log.details.append(("soft_failure", "confirmation email not sent"))
        if not result.calendar_event_created:
            request_log.details.append(("soft_failure", "calendar event not created"))

        return ConfirmationResponse(
            success=True,
            email_sent=result.email_sent,
            calendar_event_created=result.calendar_event_created,
        )

    except HTTPException as e:
        record_http_error(request_log, e)
        raise

    except Exception as e:
        logger.exception("send-booking-confirmation failed")
        request_log.finish(status.HTTP_500_INTERNAL_SERVER_ERROR)
        request_log.error_code = ErrorCodes.INTERNAL_ERROR
        request_log.error_message = str(e)
        raise http_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", ErrorCodes.INTERNAL_ERROR
        )

    finally:
        write_request_log(request_log, settings)


# =============================================================================
# ADMIN CANCELLATION
# =============================================================================


@router.post("/send-cancellation-notice", response_model=SuccessResponse)
async def send_cancellation_notice(
    request: Request,
    payload: AdminCancellationRequest | None = None,
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
):
    """Cancel a booking as the host: notify the student, drop the event, delete the row."""
    payload = payload or AdminCancellationRequest()
    request_log = start_request_log(request)
    request_log.booking_id = logged_booking_id(payload.booking_id)

    try:
        try:
            deleted = await orchestrator.cancel_by_admin(payload.booking_id, payload.admin_password)
        except BookingError as e:
            raise booking_http_error(e)

        request_log.finish(status.HTTP_200_OK)
        if not deleted:
            request_log.details.append(("warning", "booking row was already gone"))
        return SuccessResponse(success=deleted)

    except HTTPException as e:
        record_http_error(request_log, e)
        raise

    except Exception as e:
        logger.exception("send-cancellation-notice failed")
        request_log.finish(status.HTTP_500_INTERNAL_SERVER_ERROR)
        request_log.error_code = ErrorCodes.INTERNAL_ERROR
        request_log.error_message = str(e)
        raise http_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", ErrorCodes.INTERNAL_ERROR
        )

    finally:
        write_request_log(request_log, settings)
