"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands
to their respective runners.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from SearchPilot.cli.runner import CommandRunner
from SearchPilot.config import load_config_with_defaults
from SearchPilot.config.app import DEFAULT_CONFIG_PATH


@click.group(help="SearchPilot: search a remote engine from the terminal.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to YAML config file (merged over config/default.yml).",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env file before processing config.
    """
    load_dotenv()
    ctx.obj = load_config_with_defaults(config_path)


@cli.command("search")
@click.argument("query")
@click.option("--page", type=click.IntRange(min=1), default=1, show_default=True, help="Page to fetch.")
@click.option("--sid", default=None, help="Session id hint from a shared address.")
@click.pass_context
def search_cmd(ctx: click.Context, query: str, page: int, sid: Optional[str]) -> None:
    """Search QUERY and print one page of results."""
    CommandRunner(ctx.obj).run_search(ctx.command.name, query=query, page=page, sid=sid)


@cli.command("open")
@click.argument("address")
@click.pass_context
def open_cmd(ctx: click.Context, address: str) -> None:
    """Load a shared address such as 'q=mars&page=2&sid=abc'."""
    CommandRunner(ctx.obj).run_open(ctx.command.name, address)


@cli.command("shell")
@click.pass_context
def shell_cmd(ctx: click.Context) -> None:
    """Interactive search with paging, related searches and voice input."""
    CommandRunner(ctx.obj).run_shell(ctx.command.name)
