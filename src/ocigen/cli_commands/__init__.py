"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from ocigen.cli_commands.chat import chat
    from ocigen.cli_commands.models import models
    from ocigen.cli_commands.request import request

    cli.add_command(models)
    cli.add_command(request)
    cli.add_command(chat)
