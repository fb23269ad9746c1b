"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.config import Settings  # noqa: E402
from core.database import BookingStore  # noqa: E402
from services.calendar import CalendarBridge  # noqa: E402
from services.credentials import CredentialBroker  # noqa: E402
from services.email import NotificationDispatcher  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway database."""
    return Settings(
        db_path=tmp_path / "office-hours.db",
        graph_tenant_id="tenant-id",
        graph_app_id="app-id",
        graph_client_secret="client-secret",
        calendar_user_email="host@example.edu",
        mail_sender="officehours@example.edu",
        admin_password="correct horse",
        cancel_page_url="https://example.github.io/office-hours/cancel.html",
        public_base_url="https://api.example.edu",
        host_name="Prof. Example",
        contact_email="host@example.edu",
        invite_domain="officehours.example.edu",
    )


@pytest.fixture
def store(settings):
    """Empty store with schema created."""
    store = BookingStore(settings.db_path)
    store.init_schema()
    return store


@pytest.fixture
def make_booking(store):
    """Factory inserting a booking and returning its id."""
    counter = {"n": 0}

    def _make(**overrides) -> int:
        counter["n"] += 1
        fields = {
            "student_name": "Ada Lovelace",
            "email": "ada@example.edu",
            "booking_date": "2025-03-10",
            "booking_time": "14:00:00",
            "cancel_token": f"token-{counter['n']}",
            "phone": "555-0100",
            "class_time": "MWF 10:00",
            "is_admin_block": False,
        }
        fields.update(overrides)
        return store.create_booking(**fields)

    return _make


@pytest.fixture
def dispatcher():
    """Dispatcher whose sends always succeed."""
    mock = MagicMock(spec=NotificationDispatcher)
    mock.send = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def broker():
    mock = MagicMock(spec=CredentialBroker)
    mock.get_access_token = AsyncMock(return_value="access-token")
    return mock


@pytest.fixture
def calendar():
    mock = MagicMock(spec=CalendarBridge)
    mock.create_event = AsyncMock(return_value="event-123")
    mock.delete_event = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def clock_at():
    """Factory for clocks frozen at a UTC instant given as an ISO string."""

    def _clock(iso: str):
        instant = datetime.fromisoformat(iso).replace(tzinfo=timezone.utc)
        return lambda: instant

    return _clock
