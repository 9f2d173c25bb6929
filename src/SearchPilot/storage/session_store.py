"""Key/value persistence for the last searched query and its session id."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Iterable, Mapping, Optional, Protocol

from SearchPilot.utils.log import log

if TYPE_CHECKING:
    from SearchPilot.storage.db import DatabaseManager


class KeyValueStore(Protocol):
    """Persistence capability injected into the session tracker.

    ``set_many`` and ``delete_many`` must apply all of their keys or none.
    """

    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None."""
        raise NotImplementedError

    def set_many(self, values: Mapping[str, Optional[str]]) -> None:
        """Store all pairs atomically; a None value deletes the key."""
        raise NotImplementedError

    def delete_many(self, keys: Iterable[str]) -> None:
        """Delete keys atomically."""
        raise NotImplementedError


class InMemoryKeyValueStore:
    """Process-local store used when state persistence is disabled."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set_many(self, values: Mapping[str, Optional[str]]) -> None:
        with self._lock:
            for key, value in values.items():
                if value is None:
                    self._data.pop(key, None)
                else:
                    self._data[key] = value

    def delete_many(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)


class SqliteKeyValueStore:
    """SQLite-backed store that outlives the process.

    Writes run in one transaction per call so a reader never observes a new
    query paired with an old session id.
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        """Initialize the store.

        Args:
            db_manager: Database manager owning the connection.
        """
        log.debug("Initializing SqliteKeyValueStore")
        self.conn = db_manager.get_connection()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            row = self.conn.execute(
                "SELECT value FROM session_state WHERE key = ?",
                (key,),
            ).fetchone()
        return row[0] if row else None

    def set_many(self, values: Mapping[str, Optional[str]]) -> None:
        if not values:
            return
        with self._lock, self.conn:
            for key, value in values.items():
                if value is None:
                    self.conn.execute("DELETE FROM session_state WHERE key = ?", (key,))
                    continue
                self.conn.execute(
                    """
                    INSERT INTO session_state (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                      value = excluded.value,
                      updated_at = CAST(strftime('%s','now') AS INTEGER)
                    """,
                    (key, value),
                )
        log.debug("Stored session state keys: %s", sorted(values))

    def delete_many(self, keys: Iterable[str]) -> None:
        self.set_many({key: None for key in keys})
