"""Logging section: console verbosity and the optional per-run log file."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from SearchPilot.config.common import expect_bool, expect_str, get_section, read_field

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Store validated logging settings.

    Attributes:
        level: Console level name, upper-cased.
        to_file: Mirror each run to ``<dir>/<action>/<action>_<stamp>.log``.
        dir: Root directory for log files.
    """

    level: str
    to_file: bool
    dir: str


def load_log(raw: Mapping[str, Any]) -> LogConfig:
    section = get_section(raw, "log", required=True)
    return LogConfig(
        level=read_field(section, "log", "level", expect_str).strip().upper(),
        to_file=read_field(section, "log", "to_file", expect_bool),
        dir=read_field(section, "log", "dir", expect_str),
    )


def check_log(config: LogConfig) -> None:
    if config.level not in _LEVELS:
        raise ValueError(f"log.level must be one of {list(_LEVELS)}")
    if config.to_file and not config.dir.strip():
        raise ValueError("log.dir must not be empty when log.to_file is set")
