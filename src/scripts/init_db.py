#!/usr/bin/env python3
"""Create the office-hours SQLite3 database with bookings, reminder_log, app_secrets, and API log tables."""

import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import get_settings
from core.database import BookingStore


def create_database():
    """Create the database and tables if they don't exist."""
    settings = get_settings()
    BookingStore(settings.db_path).init_schema()
    print(f"Database created successfully at: {settings.db_path}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_database()
