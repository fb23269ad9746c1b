#!/usr/bin/env python3
"""
Run one 24-hour reminder sweep without going through the HTTP API.

Meant for cron, once an hour:
    0 * * * * cd /srv/office-hours && uv run python src/scripts/send_reminders.py
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import get_settings
from core.database import BookingStore
from services.email import NotificationDispatcher
from services.reminders import ReminderScheduler

logger = logging.getLogger("send_reminders")


async def main():
    """Main entry point."""
    settings = get_settings()
    store = BookingStore(settings.db_path)
    scheduler = ReminderScheduler(store, NotificationDispatcher(settings), settings)

    result = await scheduler.run()
    logger.info("Checked %d booking(s), sent %d reminder(s)", result["checked"], result["reminded"])


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main())
