"""FastAPI dependencies for shared resources.

Each request gets components wired from the process-wide Settings; tests swap
them out through app.dependency_overrides.
"""

from fastapi import Depends

from core.config import Settings, get_settings
from core.database import BookingStore
from services.bookings import LifecycleOrchestrator
from services.calendar import CalendarBridge
from services.credentials import CredentialBroker
from services.email import NotificationDispatcher
from services.reminders import ReminderScheduler


def get_store(settings: Settings = Depends(get_settings)) -> BookingStore:
    return BookingStore(settings.db_path)


def get_dispatcher(settings: Settings = Depends(get_settings)) -> NotificationDispatcher:
    return NotificationDispatcher(settings)


def get_orchestrator(
    settings: Settings = Depends(get_settings),
    store: BookingStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> LifecycleOrchestrator:
    return LifecycleOrchestrator(
        store=store,
        dispatcher=dispatcher,
        broker=CredentialBroker(store, settings),
        calendar=CalendarBridge(settings),
        settings=settings,
    )


def get_reminder_scheduler(
    settings: Settings = Depends(get_settings),
    store: BookingStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> ReminderScheduler:
    return ReminderScheduler(store, dispatcher, settings)
