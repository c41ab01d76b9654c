"""Agentloop CLI -- terminal interface for running tool-calling sessions.

This module is NEVER imported from agentloop/__init__.py.
It is only loaded via the ``agentloop`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging

import click

from agentloop.cli.formatting import format_error, get_console


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Agentloop: run a prompt through a tool-calling completion loop."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# Register subcommands after cli group is defined
from agentloop.cli.commands.replay import replay  # noqa: E402
from agentloop.cli.commands.run import run  # noqa: E402

cli.add_command(run)
cli.add_command(replay)

__all__ = ["cli", "format_error", "get_console"]
