"""Storage layer for SearchPilot.

Provides database management and the key/value store that persists the last
searched query together with its backend session id.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from SearchPilot.storage.db import DatabaseManager
from SearchPilot.storage.session_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    SqliteKeyValueStore,
)
from SearchPilot.utils.log import log

if TYPE_CHECKING:
    from SearchPilot.config import AppConfig


def create_session_store(config: AppConfig) -> tuple[DatabaseManager | None, KeyValueStore]:
    """Create the session store based on configuration.

    Args:
        config: Application configuration containing storage settings.

    Returns:
        Tuple of (db_manager, store). ``db_manager`` is None when state
        persistence is disabled and the store lives in memory.
    """
    if not config.storage.enabled:
        log.debug("State storage disabled; session state is kept in memory")
        return None, InMemoryKeyValueStore()

    db_path = Path(config.storage.db_path)
    db_manager = DatabaseManager(db_path)
    log.info("State storage enabled: %s", db_path)
    return db_manager, SqliteKeyValueStore(db_manager)


__all__ = [
    "DatabaseManager",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
    "create_session_store",
]
