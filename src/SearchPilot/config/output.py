"""Output domain configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from SearchPilot.config.common import get_section, one_of, read_field

_ALLOWED_FORMATS = {"console", "json"}


@dataclass(frozen=True, slots=True)
class OutputConfig:
    format: str = "console"


def load_output(raw: Mapping[str, Any]) -> OutputConfig:
    section = get_section(raw, "output", required=False)
    return OutputConfig(
        format=read_field(section, "output", "format", one_of(_ALLOWED_FORMATS), "console"),
    )
