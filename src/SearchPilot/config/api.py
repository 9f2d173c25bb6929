"""Backend API configuration: endpoint, timeouts, paging and retries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from SearchPilot.config.common import expect_float, expect_int, expect_str, get_section, read_field


@dataclass(frozen=True, slots=True)
class ApiConfig:
    """Store validated backend connection settings.

    Attributes:
        base_url: API root including the ``/api`` base path.
        timeout: Per-request timeout in seconds.
        page_size: Results requested per page.
        max_attempts: Attempts for connection failures; 1 disables retries.
    """

    base_url: str
    timeout: float
    page_size: int
    max_attempts: int


def load_api(raw: Mapping[str, Any]) -> ApiConfig:
    """Load the ``api`` section.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "api", required=True)
    return ApiConfig(
        base_url=read_field(section, "api", "base_url", expect_str).strip(),
        timeout=read_field(section, "api", "timeout", expect_float),
        page_size=read_field(section, "api", "page_size", expect_int),
        max_attempts=read_field(section, "api", "max_attempts", expect_int),
    )


def check_api(config: ApiConfig) -> None:
    if not config.base_url.startswith(("http://", "https://")):
        raise ValueError("api.base_url must be an http(s) URL")
    if config.timeout <= 0:
        raise ValueError("api.timeout must be positive")
    if config.page_size <= 0:
        raise ValueError("api.page_size must be positive")
    if config.max_attempts < 1:
        raise ValueError("api.max_attempts must be >= 1")
