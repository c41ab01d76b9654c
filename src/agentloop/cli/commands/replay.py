"""agentloop replay -- rebuild a transcript from a session audit log."""

from __future__ import annotations

import click

from agentloop.cli.formatting import format_error, format_transcript, get_console


@click.command()
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the transcript as wire-format JSON.")
def replay(log_file: str, as_json: bool) -> None:
    """Print the transcript recorded in LOG_FILE."""
    import json

    from agentloop.audit import read_audit_log, replay_transcript
    from agentloop.exceptions import AgentLoopError

    console = get_console()
    try:
        messages = replay_transcript(read_audit_log(log_file))
    except (OSError, ValueError, AgentLoopError) as e:
        format_error(str(e), console)
        raise SystemExit(1) from None

    if as_json:
        click.echo(json.dumps([m.to_wire() for m in messages], indent=2))
    else:
        format_transcript(messages, console)
