"""Orchestrator configuration types.

Provides SessionState, EndReason and SessionConfig for the tool-dispatch
loop.

States follow ``INIT -> REQUESTING -> (DISPATCHING -> REQUESTING)* ->
DONE | FAILED``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 1024


class SessionState(str, enum.Enum):
    """States a session moves through during its lifecycle."""

    INIT = "init"
    REQUESTING = "requesting"
    DISPATCHING = "dispatching"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.DONE, SessionState.FAILED)


class EndReason(str, enum.Enum):
    """Why a session reached DONE or FAILED."""

    NO_MORE_TOOL_CALLS = "no_more_tool_calls"
    SERVICE_ERROR = "service_error"
    TOOL_ERROR = "tool_error"
    TURN_LIMIT_EXCEEDED = "turn_limit_exceeded"
    CANCELLED = "cancelled"
    INTERNAL_ERROR = "internal_error"


@dataclass
class SessionConfig:
    """Configuration for one orchestrated session.

    Attributes:
        model: Model identifier sent with every request.
        max_tokens: Output token limit per request.
        system_prompt: Optional system prompt sent with every request.
        max_turns: Maximum number of request/response exchanges. None
            means unbounded: a model that keeps requesting tools then
            never terminates on its own.
        max_parallel_tools: Worker threads used for the tool calls of a
            single turn. 1 dispatches sequentially.
        isolate_tool_errors: When True, unknown tools, invalid arguments
            and tool failures become error ToolResults sent back to the
            model. When False, they end the session as FAILED.
    """

    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    system_prompt: str | None = None
    max_turns: int | None = None
    max_parallel_tools: int = 1
    isolate_tool_errors: bool = True

    def __post_init__(self) -> None:
        if self.max_turns is not None and self.max_turns < 1:
            raise ValueError(f"max_turns must be >= 1, got {self.max_turns}")
        if self.max_parallel_tools < 1:
            raise ValueError(
                f"max_parallel_tools must be >= 1, got {self.max_parallel_tools}"
            )
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")
