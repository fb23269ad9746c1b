"""
SQLite persistence for bookings, reminder log entries, and app secrets.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from models.bookings import Booking, ReminderCandidate

logger = logging.getLogger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS bookings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        student_name TEXT NOT NULL,
        email TEXT NOT NULL,
        phone TEXT,
        class_time TEXT,
        booking_date TEXT NOT NULL,
        booking_time TEXT NOT NULL,
        is_admin_block INTEGER NOT NULL DEFAULT 0,
        outlook_event_id TEXT,
        cancel_token TEXT UNIQUE NOT NULL,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (booking_date, booking_time)
    )
    """,
    # One row per booking; the UNIQUE constraint is what makes reminders at-most-once
    """
    CREATE TABLE IF NOT EXISTS reminder_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        booking_id INTEGER UNIQUE NOT NULL,
        sent_at TEXT NOT NULL,
        FOREIGN KEY (booking_id) REFERENCES bookings(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS app_secrets (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT UNIQUE NOT NULL,
        timestamp TEXT NOT NULL,
        endpoint TEXT NOT NULL,
        method TEXT NOT NULL,
        client_ip TEXT,
        booking_id INTEGER,
        status_code INTEGER NOT NULL,
        error_code TEXT,
        error_message TEXT,
        processing_time_ms INTEGER NOT NULL,
        reminders_checked INTEGER,
        reminders_sent INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_request_details (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT NOT NULL,
        detail_type TEXT NOT NULL CHECK(detail_type IN ('validation_error', 'soft_failure', 'warning')),
        message TEXT NOT NULL,
        FOREIGN KEY (request_id) REFERENCES api_requests(request_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_bookings_date ON bookings(booking_date)",
    "CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp ON api_requests(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_api_request_details_request ON api_request_details(request_id)",
]

BOOKING_COLUMNS = (
    "id, student_name, email, phone, class_time, booking_date, booking_time, "
    "is_admin_block, outlook_event_id, cancel_token"
)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_booking(row: sqlite3.Row) -> Booking:
    booking = dict(row)
    booking["is_admin_block"] = bool(booking["is_admin_block"])
    return booking


class BookingStore:
    """
    Booking records, reminder log, and rotating secrets in one SQLite file.

    Every call opens its own connection, so a store can be shared freely
    between requests. sqlite3.Error propagates to the caller; the only
    conflict absorbed here is a duplicate reminder-log insert.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_schema(self):
        """Create the database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_connection()
        try:
            for statement in SCHEMA:
                conn.execute(statement)
            conn.commit()
        finally:
            conn.close()

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            conn = self.get_connection()
            try:
                conn.execute("SELECT 1 FROM bookings LIMIT 1")
            finally:
                conn.close()
            return True
        except sqlite3.Error as e:
            logger.warning("Database ping failed: %s", e)
            return False

    # =========================================================================
    # BOOKINGS
    # =========================================================================

    def create_booking(
        self,
        student_name: str,
        email: str,
        booking_date: str,
        booking_time: str,
        cancel_token: str,
        phone: str | None = None,
        class_time: str | None = None,
        is_admin_block: bool = False,
    ) -> int:
        """Insert a booking row and return its id."""
        conn = self.get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO bookings (
                    student_name, email, phone, class_time, booking_date,
                    booking_time, is_admin_block, cancel_token
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    student_name,
                    email,
                    phone,
                    class_time,
                    booking_date,
                    booking_time,
                    int(is_admin_block),
                    cancel_token,
                ),
            )
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()

    def get_booking(self, booking_id: int) -> Booking | None:
        conn = self.get_connection()
        try:
            row = conn.execute(
                f"SELECT {BOOKING_COLUMNS} FROM bookings WHERE id = ?", (booking_id,)
            ).fetchone()
        finally:
            conn.close()
        return _to_booking(row) if row else None

    def get_booking_by_token(self, cancel_token: str) -> Booking | None:
        conn = self.get_connection()
        try:
            row = conn.execute(
                f"SELECT {BOOKING_COLUMNS} FROM bookings WHERE cancel_token = ?",
                (cancel_token,),
            ).fetchone()
        finally:
            conn.close()
        return _to_booking(row) if row else None

    def get_cancel_token(self, booking_id: int) -> str | None:
        conn = self.get_connection()
        try:
            row = conn.execute(
                "SELECT cancel_token FROM bookings WHERE id = ?", (booking_id,)
            ).fetchone()
        finally:
            conn.close()
        return row["cancel_token"] if row else None

    def set_outlook_event_id(self, booking_id: int, event_id: str) -> bool:
        """Attach a calendar event id to a booking. Returns False if no row matched."""
        conn = self.get_connection()
        try:
            cursor = conn.execute(
                "UPDATE bookings SET outlook_event_id = ? WHERE id = ?",
                (event_id, booking_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def delete_booking(self, booking_id: int) -> bool:
        """Delete a booking (and, by cascade, its reminder log entry)."""
        conn = self.get_connection()
        try:
            cursor = conn.execute("DELETE FROM bookings WHERE id = ?", (booking_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # =========================================================================
    # REMINDERS
    # =========================================================================

    def find_reminder_candidates(self, booking_date: str, hour: int) -> list[ReminderCandidate]:
        """
        Student bookings on booking_date whose start falls within the given hour.

        Each row carries whether a reminder_log entry already exists for it.
        """
        conn = self.get_connection()
        try:
            rows = conn.execute(
                """
                SELECT b.id, b.student_name, b.email, b.booking_date, b.booking_time,
                       b.is_admin_block, r.booking_id IS NOT NULL AS reminded
                FROM bookings b
                LEFT JOIN reminder_log r ON r.booking_id = b.id
                WHERE b.booking_date = ?
                  AND b.booking_time LIKE ?
                  AND b.is_admin_block = 0
                ORDER BY b.booking_time
                """,
                (booking_date, f"{hour:02d}:%"),
            ).fetchall()
        finally:
            conn.close()

        candidates = []
        for row in rows:
            candidate = dict(row)
            candidate["is_admin_block"] = bool(candidate["is_admin_block"])
            candidate["reminded"] = bool(candidate["reminded"])
            candidates.append(candidate)
        return candidates

    def record_reminder(self, booking_id: int, sent_at: str | None = None) -> bool:
        """
        Insert a reminder_log entry.

        Returns False when an entry for this booking already exists.
        """
        conn = self.get_connection()
        try:
            conn.execute(
                "INSERT INTO reminder_log (booking_id, sent_at) VALUES (?, ?)",
                (booking_id, sent_at or _utcnow()),
            )
            conn.commit()
            return True
        except sqlite3.IntegrityError:
            logger.info("Reminder already logged for booking %s", booking_id)
            return False
        finally:
            conn.close()

    # =========================================================================
    # SECRETS
    # =========================================================================

    def get_secret(self, key: str) -> str | None:
        conn = self.get_connection()
        try:
            row = conn.execute(
                "SELECT value FROM app_secrets WHERE key = ?", (key,)
            ).fetchone()
        finally:
            conn.close()
        return row["value"] if row else None

    def put_secret(self, key: str, value: str):
        """Unconditionally set a secret. Only for out-of-band initialization."""
        conn = self.get_connection()
        try:
            conn.execute(
                """
                INSERT INTO app_secrets (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                               updated_at = excluded.updated_at
                """,
                (key, value, _utcnow()),
            )
            conn.commit()
        finally:
            conn.close()

    def compare_and_swap_secret(self, key: str, expected: str, new_value: str) -> bool:
        """
        Replace a secret only if it still holds `expected`.

        Returns False if another writer got there first.
        """
        conn = self.get_connection()
        try:
            cursor = conn.execute(
                "UPDATE app_secrets SET value = ?, updated_at = ? WHERE key = ? AND value = ?",
                (new_value, _utcnow(), key, expected),
            )
            conn.commit()
            return cursor.rowcount == 1
        finally:
            conn.close()
