"""Rebuild a transcript from audit entries.

The audit trail holds enough to reconstruct the conversation exactly:
``session_start`` carries the initial prompt, each ``api_response`` carries
an assistant message, and ``tool_result`` entries carry the content of every
ToolResult block. Results are reassembled in ToolUse declaration order, so
the order in which concurrent tools happened to finish does not matter.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from agentloop.models.audit import AuditEventType
from agentloop.models.content import (
    CompletionResponse,
    Message,
    ToolResultBlock,
)
from agentloop.transcript import TranscriptStore

if TYPE_CHECKING:
    from collections.abc import Iterable

    from agentloop.models.audit import AuditEntry

logger = logging.getLogger(__name__)


def replay_transcript(entries: Iterable[AuditEntry]) -> tuple[Message, ...]:
    """Reconstruct the transcript a session produced.

    Args:
        entries: Audit entries in recorded order.

    Returns:
        The transcript as a tuple of messages. A trailing assistant message
        whose tool calls never all completed (the session failed during
        dispatch) is kept without a result message.

    Raises:
        ValueError: If the entries do not start with ``session_start``.
        TranscriptError: If the recorded events break the transcript
            invariants.
    """
    store = TranscriptStore()
    results: dict[str, ToolResultBlock] = {}
    started = False

    for entry in entries:
        if entry.type == AuditEventType.SESSION_START:
            if started:
                raise ValueError("Audit entries contain more than one session")
            started = True
            store.append(Message.user_text(entry.payload.get("initial_prompt", "")))
        elif not started:
            raise ValueError("Audit entries must begin with session_start")
        elif entry.type == AuditEventType.API_REQUEST:
            _flush_results(store, results)
        elif entry.type == AuditEventType.API_RESPONSE:
            response = CompletionResponse.from_raw(entry.payload.get("response", {}))
            store.append(response.to_message())
        elif entry.type == AuditEventType.TOOL_RESULT:
            tool = entry.payload.get("tool", {})
            results[tool["id"]] = ToolResultBlock(
                tool_use_id=tool["id"],
                content=str(tool.get("output", "")),
                is_error=bool(tool.get("is_error", False)),
            )
        elif entry.type == AuditEventType.SESSION_END:
            _flush_results(store, results)

    _flush_results(store, results)
    return store.snapshot()


def _flush_results(store: TranscriptStore, results: dict[str, ToolResultBlock]) -> None:
    pending = store.pending_tool_use_ids()
    if not pending:
        return
    missing = [tid for tid in pending if tid not in results]
    if missing:
        logger.debug("Replay stops before dispatch completed: missing %s", missing)
        return
    store.append(Message.tool_results([results.pop(tid) for tid in pending]))
