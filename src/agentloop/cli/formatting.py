"""Rich formatting helpers for the agentloop CLI.

Mirrors audit events to the terminal and renders session results and
replayed transcripts. Rich auto-detects TTY and degrades gracefully when
piped (no ANSI codes).
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from agentloop.models.audit import AuditEventType
from agentloop.models.content import TextBlock, ToolResultBlock, ToolUseBlock

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from agentloop.models.audit import AuditEntry
    from agentloop.models.content import Message
    from agentloop.orchestrator.models import SessionResult

_EVENT_STYLES: dict[AuditEventType, str] = {
    AuditEventType.SESSION_START: "bold",
    AuditEventType.API_REQUEST: "dim",
    AuditEventType.API_RESPONSE: "cyan",
    AuditEventType.TOOL_CALL: "magenta",
    AuditEventType.TOOL_RESULT: "green",
    AuditEventType.ERROR: "red",
    AuditEventType.SESSION_END: "bold",
}


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)


def make_event_printer(
    console: Console, *, verbose: bool = False
) -> Callable[[AuditEntry], None]:
    """Build an audit listener that mirrors events to ``console``.

    In compact mode requests are summarised, assistant text and tool I/O
    are shown inline. Verbose mode prints every payload as JSON.
    """

    def printer(entry: AuditEntry) -> None:
        stamp = entry.timestamp.strftime("%H:%M:%S")
        style = _EVENT_STYLES.get(entry.type, "default")
        turn = f" turn {entry.turn}" if entry.turn is not None else ""
        header = f"[{style}]\\[{stamp}] {entry.type.value}{turn}[/{style}]"

        if verbose:
            console.print(header, highlight=False)
            console.print_json(json.dumps(entry.payload, default=str))
            return

        detail = _summarise(entry)
        console.print(f"{header} {detail}", highlight=False)

    return printer


def _summarise(entry: AuditEntry) -> str:
    payload = entry.payload
    if entry.type == AuditEventType.SESSION_START:
        return f"log: {escape(str(payload.get('log_file') or '-'))}"
    if entry.type == AuditEventType.API_REQUEST:
        request = payload.get("request", {})
        return f"{len(request.get('messages', []))} message(s)"
    if entry.type == AuditEventType.API_RESPONSE:
        response = payload.get("response", {})
        texts = [
            b.get("text", "")
            for b in response.get("content", [])
            if b.get("type") == "text"
        ]
        stop = response.get("stop_reason")
        text = escape(" ".join(texts).strip())
        return f"stop={stop}" + (f"\n  Assistant: {text}" if text else "")
    if entry.type == AuditEventType.TOOL_CALL:
        tool = payload.get("tool", {})
        args = escape(json.dumps(tool.get("input", {}), default=str))
        return f"{escape(tool.get('name', ''))} {args}"
    if entry.type == AuditEventType.TOOL_RESULT:
        tool = payload.get("tool", {})
        marker = "[red]error[/red] " if tool.get("is_error") else ""
        return (
            f"{marker}{escape(str(tool.get('output', '')))} "
            f"[dim]({tool.get('duration_ms', 0)}ms)[/dim]"
        )
    if entry.type == AuditEventType.ERROR:
        error = payload.get("error", {})
        return f"{escape(error.get('name', ''))}: {escape(error.get('message', ''))}"
    if entry.type == AuditEventType.SESSION_END:
        return f"reason={payload.get('reason')} turns={payload.get('total_turns')}"
    return ""


def format_result(result: SessionResult, console: Console) -> None:
    """Display the outcome of a session."""
    if result.succeeded:
        if result.final_text:
            console.print(Panel(escape(result.final_text), title="Assistant"))
        console.print(
            f"[green]Session completed[/green] after {result.turns} turn(s)."
        )
    else:
        format_error(
            f"Session failed ({result.reason.value}): {result.error_message}",
            console,
        )
    if result.audit_location:
        console.print(f"Full session log saved to: {escape(result.audit_location)}")


def format_transcript(messages: Sequence[Message], console: Console) -> None:
    """Display a transcript, one block per line."""
    if not messages:
        console.print("[dim]Empty transcript.[/dim]")
        return

    for i, message in enumerate(messages):
        if i > 0:
            console.print()
        colour = "yellow" if message.role == "user" else "cyan"
        console.print(f"[{colour}]{message.role}[/{colour}]")
        for block in message.content:
            if isinstance(block, TextBlock):
                console.print(f"  {escape(block.text.strip())}")
            elif isinstance(block, ToolUseBlock):
                args = escape(json.dumps(block.input, default=str))
                console.print(f"  [magenta]tool_use[/magenta] {block.id} {escape(block.name)} {args}")
            elif isinstance(block, ToolResultBlock):
                marker = " [red](error)[/red]" if block.is_error else ""
                console.print(
                    f"  [green]tool_result[/green] {block.tool_use_id}{marker}: "
                    f"{escape(block.content)}"
                )
            else:
                raise TypeError(f"Unknown block type: {type(block).__name__}")
