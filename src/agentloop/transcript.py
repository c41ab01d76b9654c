"""TranscriptStore: ordered, append-only conversation history.

Every append is checked against the structural invariants of the
protocol before it is accepted:

- the first message is from the user and roles strictly alternate;
- ToolUse ids are unique within one assistant message;
- a user message that follows an assistant message with tool uses
  carries exactly one ToolResult per ToolUse id, in declaration order,
  and nothing pairs with a ToolUse outside that assistant message.

A violation raises a TranscriptError subclass and leaves the store
unchanged.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from agentloop.exceptions import RoleSequenceError, ToolPairingError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from agentloop.models.content import Message

logger = logging.getLogger(__name__)


class TranscriptStore:
    """Append-only message history owned by a single session.

    Usage::

        store = TranscriptStore()
        store.append(Message.user_text("echo hi"))
        payload = store.to_wire()
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())

    def last(self) -> Message | None:
        """Return the most recent message, or None if empty."""
        return self._messages[-1] if self._messages else None

    def append(self, message: Message) -> None:
        """Append a message after validating it against the invariants.

        Raises:
            RoleSequenceError: If the message starts the transcript with
                an assistant role or repeats the previous role.
            ToolPairingError: If tool results do not pair with the
                pending tool uses, or tool use ids repeat.
        """
        previous = self.last()
        if previous is None:
            if message.role != "user":
                raise RoleSequenceError(message.role, None)
        elif message.role == previous.role:
            raise RoleSequenceError(message.role, previous.role)

        if message.role == "assistant":
            ids = [b.id for b in message.tool_uses()]
            if len(ids) != len(set(ids)):
                raise ToolPairingError(
                    f"Duplicate tool_use ids in one assistant message: {ids}"
                )
        else:
            self._check_pairing(message)

        self._messages.append(message)
        logger.debug(
            "Appended %s message #%d (%d block(s))",
            message.role,
            len(self._messages),
            len(message.content),
        )

    def pending_tool_use_ids(self) -> list[str]:
        """Return ToolUse ids awaiting results, in declaration order.

        Non-empty only when the last message is an assistant message that
        contains tool-use blocks.
        """
        last = self.last()
        if last is None or last.role != "assistant":
            return []
        return [b.id for b in last.tool_uses()]

    def snapshot(self) -> tuple[Message, ...]:
        """Return an immutable ordered copy of all messages."""
        return tuple(self._messages)

    def to_wire(self) -> list[dict[str, Any]]:
        """Return the transcript in the completion service's wire format."""
        return [m.to_wire() for m in self._messages]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_pairing(self, message: Message) -> None:
        pending = self.pending_tool_use_ids()
        result_ids = [b.tool_use_id for b in message.results()]
        if not pending:
            if result_ids:
                raise ToolPairingError(
                    f"Tool results {result_ids} do not answer any pending "
                    f"tool use"
                )
            return
        if result_ids != pending:
            raise ToolPairingError(
                f"Tool results {result_ids} must match pending tool uses "
                f"{pending} one-to-one and in order"
            )
