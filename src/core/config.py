"""
Configuration constants and environment setup.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = PROJECT_ROOT / "data" / "db" / "office-hours.db"

# =============================================================================
# FACILITY CONFIGURATION
# =============================================================================

# Phoenix does not observe daylight saving; the offset is fixed year-round.
FACILITY_UTC_OFFSET_HOURS = -7
FACILITY_TIMEZONE = "America/Phoenix"
LOCATION = "CCOB 42-125"

APPOINTMENT_MINUTES = 30
CANCELLATION_LEAD_HOURS = 2
REMINDER_LEAD_HOURS = 24
CALENDAR_REMINDER_MINUTES = 15

# Email placeholder stored on administrator-held slots
NO_EMAIL = "N/A"

# =============================================================================
# MS GRAPH CONFIGURATION
# =============================================================================

REFRESH_TOKEN_KEY = "ms_refresh_token"
TOKEN_SCOPE = "Calendars.ReadWrite offline_access"
TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
GRAPH_API_URL = "https://graph.microsoft.com/v1.0"

# =============================================================================
# API CONFIGURATION
# =============================================================================

API_VERSION = "1.0.0"


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at startup and passed explicitly."""

    db_path: Path = DB_PATH

    graph_tenant_id: str = ""
    graph_app_id: str = ""
    graph_client_secret: str = ""
    calendar_user_email: str = ""

    mail_sender: str = ""
    mail_sender_name: str = "Office Hours"

    admin_password: str = ""
    cancel_page_url: str = "http://localhost:8000/cancel.html"
    public_base_url: str = "http://localhost:8000"

    host_name: str = "your instructor"
    contact_email: str = ""
    invite_domain: str = "officehours.local"

    facility_utc_offset_hours: int = FACILITY_UTC_OFFSET_HOURS
    facility_timezone: str = FACILITY_TIMEZONE
    location: str = LOCATION
    appointment_minutes: int = APPOINTMENT_MINUTES
    cancellation_lead_hours: int = CANCELLATION_LEAD_HOURS
    reminder_lead_hours: int = REMINDER_LEAD_HOURS
    calendar_reminder_minutes: int = CALENDAR_REMINDER_MINUTES

    refresh_token_key: str = REFRESH_TOKEN_KEY
    token_scope: str = TOKEN_SCOPE

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False

    @property
    def token_url(self) -> str:
        return TOKEN_URL_TEMPLATE.format(tenant_id=self.graph_tenant_id)

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the environment (and .env, loaded at import)."""
        env = os.environ.get
        return cls(
            db_path=Path(env("OFFICE_HOURS_DB_PATH", str(DB_PATH))),
            graph_tenant_id=env("MS_TENANT_ID", ""),
            graph_app_id=env("MS_CLIENT_ID", ""),
            graph_client_secret=env("MS_CLIENT_SECRET", ""),
            calendar_user_email=env("MS_USER_EMAIL", ""),
            mail_sender=env("MAIL_SENDER", ""),
            mail_sender_name=env("MAIL_SENDER_NAME", "Office Hours"),
            admin_password=env("ADMIN_PASSWORD", ""),
            cancel_page_url=env("CANCEL_PAGE_URL", "http://localhost:8000/cancel.html"),
            public_base_url=env("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
            host_name=env("OFFICE_HOURS_HOST", "your instructor"),
            contact_email=env("OFFICE_HOURS_CONTACT_EMAIL", ""),
            invite_domain=env("INVITE_UID_DOMAIN", "officehours.local"),
            location=env("OFFICE_HOURS_LOCATION", LOCATION),
            api_host=env("API_HOST", "0.0.0.0"),
            api_port=int(env("API_PORT", "8000")),
            api_debug=env("API_DEBUG", "false").lower() == "true",
        )


@lru_cache
def get_settings() -> Settings:
    """Settings for this process (cached after the first call)."""
    return Settings.from_env()
