"""Completion client protocol.

Defines the pluggable interface the orchestrator talks to. Any object with
matching ``create_message()`` and ``close()`` methods works, which is how
tests inject fake clients.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CompletionClient(Protocol):
    """Protocol for completion services that can request tool calls.

    The built-in AnthropicClient implements this protocol.
    """

    def create_message(
        self,
        *,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
        system: str | None = None,
    ) -> dict:
        """Send the transcript and tool schemas, return the raw response dict.

        Implementations raise ``TransportError`` when the service is
        unreachable and ``ServiceError`` when it answers with an error.
        """
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...
