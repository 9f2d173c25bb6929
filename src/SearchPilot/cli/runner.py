"""Command runner for coordinating CLI execution.

Manages component lifecycle, resource cleanup, logging configuration,
and error handling for command execution.
"""

from __future__ import annotations

from contextlib import ExitStack
from typing import Callable, Optional, TextIO

import click

from SearchPilot.cli.commands import SearchCommand, ShellCommand
from SearchPilot.config import AppConfig
from SearchPilot.core.location import Location
from SearchPilot.renderers import create_output_writer
from SearchPilot.services import SearchSessionController, create_search_controller
from SearchPilot.storage import create_session_store
from SearchPilot.utils.log import configure_logging, log
from SearchPilot.voice.capture import SpeechRecognizer
from SearchPilot.voice.recognizers import ConsoleRecognizer

# Slack on top of the worst-case request time before the CLI gives up waiting.
_SETTLE_MARGIN = 5.0
_VOICE_TIMEOUT = 60.0


class CommandRunner:
    """Orchestrates command execution with proper resource management.

    Handles logging configuration, component creation, database context
    management, and error handling for CLI commands.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    @property
    def settle_timeout(self) -> float:
        """Longest the CLI waits for one fetch: every search attempt plus margin."""
        api = self.config.api
        return api.timeout * api.max_attempts + _SETTLE_MARGIN

    def run_search(self, action: str, *, query: str, page: int = 1, sid: Optional[str] = None) -> None:
        """Execute a one-shot search.

        Raises:
            click.Abort: When the search fails.
        """
        location = Location(q=query.strip(), page=page, sid=sid) if page != 1 or sid else None

        def _execute(controller: SearchSessionController) -> None:
            command = SearchCommand(controller, create_output_writer(self.config), self.settle_timeout)
            command.execute(query=query, location=location)

        self._run(action, _execute)

    def run_open(self, action: str, address: str) -> None:
        """Execute the search described by an address query string or URL."""

        def _execute(controller: SearchSessionController) -> None:
            command = SearchCommand(controller, create_output_writer(self.config), self.settle_timeout)
            command.execute(location=Location.parse(address))

        self._run(action, _execute)

    def run_shell(self, action: str, stream: Optional[TextIO] = None) -> None:
        """Execute the interactive shell.

        Console dictation reads from the shell's own stream, so a capture is
        never abandoned on a timer: its reader would swallow the next command.
        """
        recognizer = None
        voice_timeout: Optional[float] = _VOICE_TIMEOUT
        if self.config.voice.provider == "console":
            recognizer = ConsoleRecognizer(stream)
            voice_timeout = None

        def _execute(controller: SearchSessionController) -> None:
            ShellCommand(
                controller,
                create_output_writer(self.config),
                self.settle_timeout,
                stream=stream,
                voice_timeout=voice_timeout,
            ).execute()

        self._run(action, _execute, recognizer=recognizer)

    def _run(
        self,
        action: str,
        execute: Callable[[SearchSessionController], None],
        *,
        recognizer: Optional[SpeechRecognizer] = None,
    ) -> None:
        log_path = configure_logging(
            level=self.config.log.level,
            action=action,
            log_to_file=self.config.log.to_file,
            log_dir=self.config.log.dir,
        )
        if log_path is not None:
            log.debug("Logging %s run to %s", action, log_path)
        try:
            with ExitStack() as stack:
                db_manager, store = create_session_store(self.config)
                if db_manager is not None:
                    stack.enter_context(db_manager)
                controller = stack.enter_context(create_search_controller(self.config, store, recognizer))
                execute(controller)
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("%s failed: %s", action.capitalize(), e)
            raise click.Abort from e
