"""Session result model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentloop.models.content import Message
    from agentloop.orchestrator.config import EndReason, SessionState
    from agentloop.toolkit.models import ToolInvocation


@dataclass(frozen=True)
class SessionResult:
    """Final result of a session.

    Frozen: the result is immutable once the run completes.

    Attributes:
        state: DONE or FAILED.
        reason: Why the session ended.
        final_text: Text of the last assistant message (empty if none).
        error: The exception that failed the session, if any.
        audit_location: Where the audit trail was written, if on disk.
        transcript: Every message exchanged, in order.
        turns: Number of request/response exchanges.
        invocations: Every tool call dispatched, in declaration order.
    """

    state: SessionState
    reason: EndReason
    final_text: str = ""
    error: BaseException | None = None
    audit_location: str | None = None
    transcript: tuple[Message, ...] = ()
    turns: int = 0
    invocations: tuple[ToolInvocation, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        from agentloop.orchestrator.config import SessionState

        return self.state == SessionState.DONE

    @property
    def error_message(self) -> str:
        if self.error is None:
            return ""
        return f"{type(self.error).__name__}: {self.error}"
