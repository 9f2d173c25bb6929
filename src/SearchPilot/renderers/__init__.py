"""Output renderers for controller snapshots.

Exports the OutputWriter base class and a factory that picks a writer from
configuration.
"""

from __future__ import annotations

from SearchPilot.config import AppConfig
from SearchPilot.renderers.base import OutputWriter
from SearchPilot.renderers.console import ConsoleOutputWriter, render_text
from SearchPilot.renderers.json import JsonOutputWriter, render_json


def create_output_writer(config: AppConfig) -> OutputWriter:
    """Create output writer based on ``output.format``."""
    if config.output.format == "json":
        return JsonOutputWriter()
    return ConsoleOutputWriter()


__all__ = [
    "OutputWriter",
    "ConsoleOutputWriter",
    "JsonOutputWriter",
    "render_json",
    "render_text",
    "create_output_writer",
]
