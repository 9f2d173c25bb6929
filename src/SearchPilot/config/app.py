from __future__ import annotations

"""Application config orchestration and YAML loading entrypoints."""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from SearchPilot.config.api import ApiConfig, check_api, load_api
from SearchPilot.config.log import LogConfig, check_log, load_log
from SearchPilot.config.output import OutputConfig, load_output
from SearchPilot.config.storage import StorageConfig, check_storage, load_storage
from SearchPilot.config.voice import VoiceConfig, check_voice, load_voice

DEFAULT_CONFIG_PATH = Path("config/default.yml")
BASE_URL_ENV = "SEARCHPILOT_API_BASE_URL"


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application root configuration."""

    log: LogConfig
    api: ApiConfig
    storage: StorageConfig
    voice: VoiceConfig
    output: OutputConfig


def parse_config_dict(raw: Mapping[str, Any]) -> AppConfig:
    """Parse normalized mapping into AppConfig."""
    log = load_log(raw)
    api = load_api(raw)
    storage = load_storage(raw)
    voice = load_voice(raw)
    output = load_output(raw)

    check_log(log)
    check_api(api)
    check_storage(storage)
    check_voice(voice)

    return AppConfig(log=log, api=api, storage=storage, voice=voice, output=output)


def load_config(path: Path) -> AppConfig:
    """Load YAML config file without default merge."""
    return load_config_with_defaults(path, default_path=path)


def load_config_with_defaults(
    config_path: Path,
    default_path: Path = DEFAULT_CONFIG_PATH,
    *,
    defaults_text: Optional[str] = None,
) -> AppConfig:
    """Load config by merging defaults and optional override.

    Args:
        config_path: Override file.
        default_path: Defaults file; ignored when ``defaults_text`` is given.
        defaults_text: Inline defaults YAML (used by tests and embedders).

    Returns:
        Parsed config with environment overrides applied.
    """
    if defaults_text is not None:
        base = parse_yaml(defaults_text)
    else:
        base = parse_yaml(default_path.read_text(encoding="utf-8"))
        if config_path == default_path:
            return apply_env_overrides(parse_config_dict(base))
    override = parse_yaml(config_path.read_text(encoding="utf-8"))
    merged = merge_config_dicts(base, override)
    return apply_env_overrides(parse_config_dict(merged))


def apply_env_overrides(config: AppConfig, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Apply ``SEARCHPILOT_API_BASE_URL`` when set and non-empty."""
    env = os.environ if environ is None else environ
    base_url = (env.get(BASE_URL_ENV) or "").strip()
    if not base_url:
        return config
    api = replace(config.api, base_url=base_url)
    check_api(api)
    return replace(config, api=api)


def parse_yaml(text: str) -> dict[str, Any]:
    """Parse raw YAML text into a mapping."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, Mapping):
        raise ValueError("Config root must be a mapping/object")
    return dict(data)


def merge_config_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two config mappings."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged
