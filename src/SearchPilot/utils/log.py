"""Logger setup for SearchPilot runs.

Every module logs through the shared ``log`` logger. Console lines read
``10-19 14:02:11 [WARN] message``. With file logging enabled each CLI run
also gets its own DEBUG-level file, so dropped stale responses and retries
can be reviewed after the fact.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(tag)s] %(message)s"
DATE_FORMAT = "%m-%d %H:%M:%S"

log = logging.getLogger("SearchPilot")


class _TagFormatter(logging.Formatter):
    """Adds a four-letter ``tag`` field: DEBG/INFO/WARN/ERRO."""

    TAGS = {"DEBUG": "DEBG", "WARNING": "WARN", "ERROR": "ERRO", "CRITICAL": "ERRO"}

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 - stdlib name
        record.tag = self.TAGS.get(record.levelname, record.levelname[:4])
        return super().format(record)


def _run_log_path(log_dir: str, action: str) -> Path:
    stamp = datetime.now().strftime("%m%d%H%M%S")
    folder = Path(log_dir or "log") / action
    folder.mkdir(parents=True, exist_ok=True)
    return folder / f"{action}_{stamp}.log"


def reset_logging() -> None:
    """Detach and close every handler on ``log``."""
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()


def configure_logging(
    *,
    level: str = "INFO",
    action: Optional[str] = None,
    log_to_file: bool = True,
    log_dir: str = "log",
) -> Optional[Path]:
    """Install the console handler, plus a per-run file handler when asked.

    Args:
        level: Console level name; unknown names fall back to INFO.
        action: CLI action, used as the log file's folder and prefix.
        log_to_file: Write ``<log_dir>/<action>/<action>_<stamp>.log``.
        log_dir: Root folder for log files.

    Returns:
        The log file path, or None when logging to the console only.
    """
    console_level = logging.getLevelName((level or "INFO").upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO
    formatter = _TagFormatter(LOG_FORMAT, DATE_FORMAT)

    reset_logging()
    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(formatter)
    log.addHandler(console)

    log_path: Optional[Path] = None
    if log_to_file and action:
        log_path = _run_log_path(log_dir, action)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)

    # The file handler always sees DEBUG; the console filters on its own.
    log.setLevel(logging.DEBUG)
    log.propagate = False
    return log_path
