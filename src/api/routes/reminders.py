"""24-hour reminder sweep endpoint (hit hourly by a scheduler)."""

import logging

from fastapi import APIRouter, Depends, Request, status

from api.dependencies import get_reminder_scheduler
from api.logging import start_request_log
from api.models import ErrorCodes, ReminderSweepResponse
from api.routes.bookings import http_error, write_request_log
from core.config import Settings, get_settings
from services.reminders import ReminderScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.api_route(
    "/send-24h-reminders", methods=["GET", "POST"], response_model=ReminderSweepResponse
)
async def send_24h_reminders(
    request: Request,
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
    settings: Settings = Depends(get_settings),
):
    """Email every booking starting in the hour 24 hours from now, once."""
    request_log = start_request_log(request)
    try:
        result = await scheduler.run()
        request_log.finish(status.HTTP_200_OK)
        request_log.reminders_checked = result["checked"]
        request_log.reminders_sent = result["reminded"]
        return ReminderSweepResponse(success=True, **result)

    except Exception as e:
        logger.exception("send-24h-reminders failed")
        request_log.finish(status.HTTP_500_INTERNAL_SERVER_ERROR)
        request_log.error_code = ErrorCodes.INTERNAL_ERROR
        request_log.error_message = str(e)
        raise http_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Reminder sweep failed", ErrorCodes.INTERNAL_ERROR
        )

    finally:
        write_request_log(request_log, settings)
