"""Fake completion clients and response builders shared by the tests."""

from __future__ import annotations

from typing import Any

from agentloop.toolkit import ToolSpec


def text_response(text: str = "All done.", stop_reason: str = "end_turn") -> dict:
    """Completion response with a single text block and no tool calls."""
    return {
        "id": "msg_text",
        "type": "message",
        "role": "assistant",
        "model": "claude-test",
        "content": [{"type": "text", "text": text}],
        "stop_reason": stop_reason,
        "stop_sequence": None,
        "usage": {"input_tokens": 10, "output_tokens": 5},
    }


def tool_response(
    calls: list[tuple[str, Any, str]],
    text: str = "",
) -> dict:
    """Completion response requesting tool calls.

    Args:
        calls: List of (tool_name, input, tool_use_id) tuples.
        text: Optional text block placed before the tool calls.
    """
    content: list[dict] = []
    if text:
        content.append({"type": "text", "text": text})
    for name, args, call_id in calls:
        content.append(
            {"type": "tool_use", "id": call_id, "name": name, "input": args}
        )
    return {
        "id": "msg_tools",
        "type": "message",
        "role": "assistant",
        "model": "claude-test",
        "content": content,
        "stop_reason": "tool_use",
        "stop_sequence": None,
        "usage": {"input_tokens": 20, "output_tokens": 15},
    }


class FakeClient:
    """Completion client that replays scripted responses and records requests.

    An item in ``responses`` that is an exception instance is raised instead
    of returned. Once the script runs out the last item repeats.
    """

    def __init__(self, responses: list):
        self._responses = list(responses)
        self.requests: list[dict] = []
        self.closed = False

    def create_message(self, *, model, messages, tools, max_tokens, system=None):
        self.requests.append(
            {
                "model": model,
                "messages": messages,
                "tools": tools,
                "max_tokens": max_tokens,
                "system": system,
            }
        )
        idx = min(len(self.requests) - 1, len(self._responses) - 1)
        item = self._responses[idx]
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.closed = True

    @property
    def call_count(self) -> int:
        return len(self.requests)


ECHO = ToolSpec(
    "echo",
    "Echo back the provided message",
    {
        "type": "object",
        "properties": {"message": {"type": "string"}},
        "required": ["message"],
    },
)

PING = ToolSpec(
    "ping",
    "Ping a host and return the result",
    {
        "type": "object",
        "properties": {"host": {"type": "string"}},
        "required": ["host"],
    },
)
