"""Schema version tracking for database migrations."""

from datetime import datetime, timezone
from typing import Optional
import sqlite3

from .database import Database


SCHEMA_VERSION = "1.0.0"

_CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS schema_version (
        version TEXT PRIMARY KEY,
        applied_at TEXT NOT NULL
    )
"""


def get_current_schema_version(db: Database) -> Optional[str]:
    """Get current schema version from database."""
    try:
        with db._get_connection() as conn:
            conn.execute(_CREATE_TABLE)
            row = conn.execute(
                "SELECT version FROM schema_version ORDER BY applied_at DESC LIMIT 1"
            ).fetchone()
            return row[0] if row else None
    except (RuntimeError, sqlite3.Error):
        return None


def set_schema_version(db: Database, version: str):
    """Set schema version in database."""
    with db._get_connection() as conn:
        conn.execute(_CREATE_TABLE)
        conn.execute("""
            INSERT OR REPLACE INTO schema_version (version, applied_at)
            VALUES (?, ?)
        """, (version, datetime.now(timezone.utc).isoformat()))
        conn.commit()


def check_schema_version(db: Database) -> bool:
    """Check if database schema is up to date."""
    current = get_current_schema_version(db)
    if current is None:
        # First run - set initial version
        set_schema_version(db, SCHEMA_VERSION)
        return True

    return current == SCHEMA_VERSION
