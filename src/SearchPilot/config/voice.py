"""Voice input configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from SearchPilot.config.common import expect_bool, expect_float, get_section, one_of, read_field

_ALLOWED_PROVIDERS = {"none", "console"}


@dataclass(frozen=True, slots=True)
class VoiceConfig:
    """Store validated voice capture settings.

    Attributes:
        provider: Recognizer backend (``none`` or ``console``).
        submit_delay: Seconds the recognized text is shown before submitting.
        use_voice_endpoint: Fetch voice queries through ``/voice-search``.
    """

    provider: str = "none"
    submit_delay: float = 0.5
    use_voice_endpoint: bool = False


def load_voice(raw: Mapping[str, Any]) -> VoiceConfig:
    """Load the optional ``voice`` section; missing keys use defaults."""
    section = get_section(raw, "voice", required=False)
    defaults = VoiceConfig()
    return VoiceConfig(
        provider=read_field(section, "voice", "provider", one_of(_ALLOWED_PROVIDERS), defaults.provider),
        submit_delay=read_field(section, "voice", "submit_delay", expect_float, defaults.submit_delay),
        use_voice_endpoint=read_field(
            section, "voice", "use_voice_endpoint", expect_bool, defaults.use_voice_endpoint
        ),
    )


def check_voice(config: VoiceConfig) -> None:
    if config.submit_delay < 0:
        raise ValueError("voice.submit_delay must be >= 0")
