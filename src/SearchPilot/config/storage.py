from __future__ import annotations

"""Storage domain configuration for the persisted query/session record."""

from dataclasses import dataclass
from typing import Any, Mapping

from SearchPilot.config.common import expect_bool, expect_str, get_section, read_field


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Storage configuration; disabled keeps session state in memory."""

    enabled: bool
    db_path: str


def load_storage(raw: Mapping[str, Any]) -> StorageConfig:
    section = get_section(raw, "state", required=True)
    return StorageConfig(
        enabled=read_field(section, "state", "enabled", expect_bool),
        db_path=read_field(section, "state", "db_path", expect_str),
    )


def check_storage(config: StorageConfig) -> None:
    if config.enabled and not config.db_path.strip():
        raise ValueError("state.db_path must not be empty")
