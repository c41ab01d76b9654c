"""Convenience wiring for a real session.

Builds an Orchestrator around the Anthropic client, the demo tool registry
and a JSONL audit file, runs one prompt and releases the client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from agentloop.audit.sinks import JsonlAuditLog
from agentloop.llm.client import AnthropicClient
from agentloop.orchestrator.config import SessionConfig
from agentloop.orchestrator.loop import Orchestrator
from agentloop.toolkit.builtin import default_registry

if TYPE_CHECKING:
    from collections.abc import Callable

    from agentloop.llm.protocols import CompletionClient
    from agentloop.models.audit import AuditEntry
    from agentloop.orchestrator.models import SessionResult
    from agentloop.toolkit.registry import ToolRegistry


def run_session(
    prompt: str,
    *,
    config: SessionConfig | None = None,
    client: CompletionClient | None = None,
    registry: ToolRegistry | None = None,
    log_dir: str = "logs",
    listeners: list[Callable[[AuditEntry], None]] | None = None,
) -> SessionResult:
    """Run one prompt through a fully wired session.

    Args:
        prompt: Initial user prompt.
        config: Session configuration (defaults apply when None).
        client: Completion client. An AnthropicClient reading
            ANTHROPIC_API_KEY is created (and closed) when None.
        registry: Tool registry. Defaults to the ping/echo demo tools.
        log_dir: Directory receiving the per-session audit file.
        listeners: Callables notified of every audit entry.

    Returns:
        The session result; ``audit_location`` points at the JSONL file.
    """
    owns_client = client is None
    if client is None:
        client = AnthropicClient()
    audit = JsonlAuditLog(log_dir, listeners=listeners)
    try:
        orchestrator = Orchestrator(
            client, registry or default_registry(), audit, config
        )
        return orchestrator.run(prompt)
    finally:
        audit.close()
        if owns_client:
            client.close()
