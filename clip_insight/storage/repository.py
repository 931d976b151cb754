"""
Repository pattern for data access.

Persists the prompt library and the usage ledger snapshot.
"""

import json
import logging
from datetime import date, datetime
from typing import List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import LedgerSnapshot
from ..core.models import PromptEntry, UsageStats

logger = logging.getLogger(__name__)


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the prompt and usage tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS prompt_entry (
                position INTEGER PRIMARY KEY,
                text TEXT NOT NULL,
                tags TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS usage_snapshot (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                day TEXT NOT NULL,
                month TEXT NOT NULL,
                requests_today INTEGER NOT NULL,
                requests_this_month INTEGER NOT NULL,
                errors_today INTEGER NOT NULL,
                cost_this_month REAL NOT NULL,
                last_request_time TEXT,
                last_error TEXT
            )
        """)
        conn.commit()
    finally:
        conn.close()


class PromptRepository:
    """Stores the prompt library in library order."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository and make sure the schema exists.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        initialize_schema(db_path)

    def load_prompts(self) -> List[PromptEntry]:
        """Load all prompts in library order."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("SELECT text, tags FROM prompt_entry ORDER BY position")
            return [
                PromptEntry(text=row[0], tags=frozenset(json.loads(row[1])))
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    def save_prompts(self, entries: List[PromptEntry]) -> None:
        """Replace the stored library atomically.

        Args:
            entries: Prompts in library order
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute("BEGIN TRANSACTION")
            conn.execute("DELETE FROM prompt_entry")
            for position, entry in enumerate(entries):
                conn.execute(
                    "INSERT INTO prompt_entry (position, text, tags) VALUES (?, ?, ?)",
                    (position, entry.text, json.dumps(sorted(entry.tags))),
                )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.debug("Saved %d prompts to %s", len(entries), self.db_path)


class UsageRepository:
    """Stores the single usage ledger snapshot."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path
        initialize_schema(db_path)

    def load_snapshot(self) -> Optional[LedgerSnapshot]:
        """Load the stored snapshot, or None if nothing was saved yet."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("""
                SELECT day, month, requests_today, requests_this_month,
                       errors_today, cost_this_month, last_request_time, last_error
                FROM usage_snapshot WHERE id = 1
            """).fetchone()
        finally:
            conn.close()

        if row is None:
            return None
        year, month = (int(part) for part in row[1].split("-"))
        return LedgerSnapshot(
            stats=UsageStats(
                requests_today=row[2],
                requests_this_month=row[3],
                errors_today=row[4],
                cost_this_month=float(row[5]),
                last_request_time=datetime.fromisoformat(row[6]) if row[6] else None,
                last_error=row[7],
            ),
            day=date.fromisoformat(row[0]),
            month=(year, month),
        )

    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        """Insert or replace the stored snapshot."""
        stats = snapshot.stats
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT OR REPLACE INTO usage_snapshot
                (id, day, month, requests_today, requests_this_month,
                 errors_today, cost_this_month, last_request_time, last_error)
                VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                snapshot.day.isoformat(),
                f"{snapshot.month[0]:04d}-{snapshot.month[1]:02d}",
                stats.requests_today,
                stats.requests_this_month,
                stats.errors_today,
                stats.cost_this_month,
                stats.last_request_time.isoformat() if stats.last_request_time else None,
                stats.last_error,
            ))
            conn.commit()
        finally:
            conn.close()
