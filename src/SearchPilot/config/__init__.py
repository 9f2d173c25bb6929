from __future__ import annotations

"""Public configuration API for SearchPilot."""

from SearchPilot.config.api import ApiConfig
from SearchPilot.config.log import LogConfig
from SearchPilot.config.app import (
    AppConfig,
    apply_env_overrides,
    load_config,
    load_config_with_defaults,
    parse_config_dict,
)
from SearchPilot.config.output import OutputConfig
from SearchPilot.config.storage import StorageConfig
from SearchPilot.config.voice import VoiceConfig

__all__ = [
    "ApiConfig",
    "LogConfig",
    "StorageConfig",
    "VoiceConfig",
    "OutputConfig",
    "AppConfig",
    "apply_env_overrides",
    "load_config",
    "load_config_with_defaults",
    "parse_config_dict",
]
