"""CLI package for SearchPilot.

Contains the click interface, the command runner that owns component
lifecycle, and the command implementations.
"""

from __future__ import annotations

__all__ = ["CommandRunner", "main"]

from SearchPilot.cli.runner import CommandRunner
from SearchPilot.cli.ui import cli


def main() -> None:
    """Run SearchPilot CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
