"""Agentloop exception hierarchy.

All agentloop-specific exceptions inherit from AgentLoopError.
Completion-service errors live in ``agentloop.llm.errors``.
"""

from __future__ import annotations


class AgentLoopError(Exception):
    """Base exception for all agentloop errors."""


# ---------------------------------------------------------------------------
# Transcript invariants
# ---------------------------------------------------------------------------


class TranscriptError(AgentLoopError):
    """Base for transcript invariant violations.

    These indicate a bug in the caller (normally the orchestrator) and are
    never expected from correct operation.
    """


class RoleSequenceError(TranscriptError):
    """Raised when an appended message breaks user/assistant alternation."""

    def __init__(self, role: str, previous: str | None) -> None:
        self.role = role
        self.previous = previous
        if previous is None:
            message = f"Transcript must start with a user message, got {role!r}"
        else:
            message = f"Message role {role!r} cannot follow {previous!r}"
        super().__init__(message)


class ToolPairingError(TranscriptError):
    """Raised when tool results do not pair with the pending tool uses."""


# ---------------------------------------------------------------------------
# Tool registry
# ---------------------------------------------------------------------------


class ToolError(AgentLoopError):
    """Base for tool lookup, validation and execution errors.

    Attributes:
        tool_name: Name of the tool the error refers to.
    """

    def __init__(self, tool_name: str, message: str) -> None:
        self.tool_name = tool_name
        super().__init__(message)


class DuplicateToolError(ToolError):
    """Raised when registering a tool name that already exists."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool already registered: {tool_name}")


class UnknownToolError(ToolError):
    """Raised when a tool name is not in the registry."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Unknown tool: {tool_name}")


class InvalidArgumentsError(ToolError):
    """Raised when tool input is not an object or lacks required fields.

    Attributes:
        missing: Required field names absent from the input.
    """

    def __init__(
        self, tool_name: str, missing: list[str] | None = None, reason: str = ""
    ) -> None:
        self.missing = list(missing or [])
        if self.missing:
            reason = f"missing required field(s): {', '.join(self.missing)}"
        super().__init__(
            tool_name, f"Invalid arguments for {tool_name}: {reason}"
        )


class ToolExecutionError(ToolError):
    """Raised when a tool implementation fails.

    Attributes:
        cause: The original exception raised by the implementation.
    """

    def __init__(self, tool_name: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(
            tool_name,
            f"Tool {tool_name} failed: {type(cause).__name__}: {cause}",
        )


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class OrchestratorError(AgentLoopError):
    """Raised for orchestrator misuse, such as running a session twice."""


class TurnLimitExceededError(AgentLoopError):
    """Raised when a session needs more turns than its configured cap."""

    def __init__(self, max_turns: int) -> None:
        self.max_turns = max_turns
        super().__init__(f"Turn limit exceeded: {max_turns} turn(s)")


class SessionCancelledError(AgentLoopError):
    """Raised inside a run when cancellation was requested."""

    def __init__(self, message: str = "Session cancelled") -> None:
        super().__init__(message)
