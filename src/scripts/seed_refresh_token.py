#!/usr/bin/env python3
"""
Store the initial Microsoft refresh token for the calendar mailbox.

The token comes from a one-time interactive consent outside this service.
After that, every calendar call rotates it automatically.

Usage:
    uv run python src/scripts/seed_refresh_token.py --token-file token.txt
    echo "$TOKEN" | uv run python src/scripts/seed_refresh_token.py
"""

import argparse
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import get_settings
from core.database import BookingStore


def seed_refresh_token(token: str):
    settings = get_settings()
    store = BookingStore(settings.db_path)
    store.init_schema()
    store.put_secret(settings.refresh_token_key, token)
    print(f"Stored '{settings.refresh_token_key}' in {settings.db_path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the rotating calendar refresh token")
    parser.add_argument("--token-file", help="File containing the refresh token. Reads stdin if omitted.")
    args = parser.parse_args()

    if args.token_file:
        token = Path(args.token_file).read_text().strip()
    else:
        token = sys.stdin.read().strip()

    if not token:
        parser.error("refresh token is empty")

    seed_refresh_token(token)
