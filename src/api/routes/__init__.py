"""API route modules."""

from .bookings import router as bookings_router
from .health import router as health_router
from .reminders import router as reminders_router

__all__ = ["bookings_router", "health_router", "reminders_router"]
