"""SQLite database utilities."""

from __future__ import annotations

import sqlite3
from pathlib import Path


class DatabaseManager:
    """Database connection manager for the session state file.

    One manager owns one connection. The connection is opened with
    ``check_same_thread=False`` because fetch completions arrive on worker
    threads; callers serialize access (see ``SqliteKeyValueStore``).

    Supports context manager protocol for automatic connection cleanup.
    """

    def __init__(self, db_path: Path) -> None:
        """Open (and create if needed) the database.

        Args:
            db_path: Absolute path or project-relative path to database file.
        """
        self.db_path = db_path
        self.conn: sqlite3.Connection | None = ensure_db(db_path)
        init_schema(self.conn)

    def get_connection(self) -> sqlite3.Connection:
        """Get the database connection.

        Returns:
            SQLite connection.

        Raises:
            RuntimeError: If the manager was closed.
        """
        if self.conn is None:
            raise RuntimeError(f"Database is closed: {self.db_path}")
        return self.conn

    def close(self) -> None:
        """Close the database connection. Safe to call twice."""
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> DatabaseManager:
        """Enter context manager.

        Returns:
            Self for use in with statement.
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager and close connection."""
        self.close()


def ensure_db(db_path: Path) -> sqlite3.Connection:
    """Ensure database file exists and return connection.

    Args:
        db_path: Absolute path or project-relative path to database file.

    Returns:
        SQLite connection.

    Raises:
        OSError: If directory creation fails.
        sqlite3.Error: If database connection fails.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(str(db_path), check_same_thread=False)


def init_schema(conn: sqlite3.Connection) -> None:
    """Initialize the key/value table holding the last query and session id.

    Args:
        conn: SQLite connection.
    """
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS session_state (
          key TEXT PRIMARY KEY,
          value TEXT NOT NULL,
          updated_at INTEGER NOT NULL DEFAULT (
            CAST(strftime('%s','now') AS INTEGER)
          )
        );
    """)
    conn.commit()
