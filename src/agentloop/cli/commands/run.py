"""agentloop run -- run one prompt through the tool-calling loop."""

from __future__ import annotations

import click

from agentloop.cli.formatting import (
    format_error,
    format_result,
    get_console,
    make_event_printer,
)
from agentloop.orchestrator.config import DEFAULT_MAX_TOKENS, DEFAULT_MODEL


def _choose_prompt(console) -> str:
    """Ask for the mode, then return the prompt to run."""
    from agentloop.prompts import EXAMPLE_PROMPT

    console.print("Choose mode:")
    console.print("1. Run example (multi-turn interaction demo)")
    console.print("2. Interactive mode (enter your own prompt)")
    choice = click.prompt(
        "Enter choice", type=click.Choice(["1", "2"]), default="1"
    )
    if choice == "1":
        console.print(f"Prompt: {EXAMPLE_PROMPT}", highlight=False)
        return EXAMPLE_PROMPT
    return click.prompt("Enter your prompt")


@click.command()
@click.argument("prompt", required=False)
@click.option("--example", is_flag=True, help="Run the built-in multi-turn example prompt.")
@click.option("--model", default=DEFAULT_MODEL, show_default=True, help="Model identifier.")
@click.option("--max-tokens", type=int, default=DEFAULT_MAX_TOKENS, show_default=True, help="Output token limit per request.")
@click.option("--max-turns", type=int, default=None, help="Fail the session after this many turns (default: unbounded).")
@click.option("--parallel", type=int, default=1, show_default=True, help="Worker threads for the tool calls of one turn.")
@click.option("--system", "system_prompt", default=None, help="Optional system prompt.")
@click.option("--log-dir", default="logs", envvar="AGENTLOOP_LOG_DIR", show_default=True, help="Directory for session audit logs.")
@click.option("--strict-tools", is_flag=True, help="End the session on the first tool failure instead of reporting it to the model.")
@click.option("--quiet", is_flag=True, help="Do not mirror audit events to the terminal.")
@click.pass_context
def run(
    ctx: click.Context,
    prompt: str | None,
    example: bool,
    model: str,
    max_tokens: int,
    max_turns: int | None,
    parallel: int,
    system_prompt: str | None,
    log_dir: str,
    strict_tools: bool,
    quiet: bool,
) -> None:
    """Run PROMPT (or the example) until the model stops requesting tools.

    Exits with status 1 if the session ends FAILED.
    """
    from agentloop.exceptions import AgentLoopError
    from agentloop.orchestrator.config import SessionConfig
    from agentloop.orchestrator.session import run_session
    from agentloop.prompts import EXAMPLE_PROMPT

    console = get_console()
    verbose = bool((ctx.obj or {}).get("verbose"))

    if example:
        prompt = EXAMPLE_PROMPT
    elif prompt is None:
        prompt = _choose_prompt(console)

    try:
        config = SessionConfig(
            model=model,
            max_tokens=max_tokens,
            system_prompt=system_prompt,
            max_turns=max_turns,
            max_parallel_tools=parallel,
            isolate_tool_errors=not strict_tools,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from None

    listeners = [] if quiet else [make_event_printer(console, verbose=verbose)]
    try:
        result = run_session(
            prompt,
            config=config,
            log_dir=log_dir,
            listeners=listeners,
        )
    except AgentLoopError as e:
        format_error(str(e), console)
        raise SystemExit(1) from None

    format_result(result, console)
    if not result.succeeded:
        raise SystemExit(1)
