"""Content block and message models.

Defines the three block variants exchanged with the completion service as
frozen Pydantic models joined in a discriminated union (Block), the Message
model that carries them, and CompletionResponse for parsing service replies.

Field names follow the Anthropic Messages wire format so that
``model_dump()`` output can be sent verbatim.
"""

from __future__ import annotations

import copy
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from agentloop.llm.errors import ResponseFormatError


# ---------------------------------------------------------------------------
# Block variants
# ---------------------------------------------------------------------------


class TextBlock(BaseModel):
    """Free text produced by either party."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """A request from the model to invoke a named tool."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    # Kept as sent; the registry rejects non-object input per call.
    input: Any = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """The outcome of one tool invocation, paired by ``tool_use_id``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


Block = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]

_block_adapter: TypeAdapter = TypeAdapter(Block)

Role = Literal["user", "assistant"]


def block_to_wire(block: Block) -> dict[str, Any]:
    """Serialize a block to the completion service's wire dict."""
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ToolUseBlock):
        return {
            "type": "tool_use",
            "id": block.id,
            "name": block.name,
            "input": copy.deepcopy(block.input),
        }
    if isinstance(block, ToolResultBlock):
        wire: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": block.tool_use_id,
            "content": block.content,
        }
        if block.is_error:
            wire["is_error"] = True
        return wire
    raise TypeError(f"Unknown block type: {type(block).__name__}")


def parse_block(raw: dict[str, Any]) -> Block:
    """Validate a raw wire dict into a Block variant.

    Raises:
        pydantic.ValidationError: If the dict is not a known block.
    """
    return _block_adapter.validate_python(raw)


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------


class Message(BaseModel):
    """One transcript entry: a role and an ordered tuple of blocks."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: tuple[Block, ...] = ()

    @classmethod
    def user_text(cls, text: str) -> Message:
        """Build the initial user message from a free-text prompt."""
        return cls(role="user", content=(TextBlock(text=text),))

    @classmethod
    def tool_results(cls, results: list[ToolResultBlock]) -> Message:
        """Build the aggregated user message answering a tool-use turn."""
        return cls(role="user", content=tuple(results))

    def tool_uses(self) -> list[ToolUseBlock]:
        """Return the ToolUse blocks in declaration order."""
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    def results(self) -> list[ToolResultBlock]:
        """Return the ToolResult blocks in order."""
        return [b for b in self.content if isinstance(b, ToolResultBlock)]

    def text(self) -> str:
        """Join the text blocks with newlines."""
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    def to_wire(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "content": [block_to_wire(b) for b in self.content],
        }


# ---------------------------------------------------------------------------
# Completion response
# ---------------------------------------------------------------------------


class CompletionResponse(BaseModel):
    """Parsed reply from the completion service.

    Only the fields the loop consumes are modelled; any other keys in the
    raw payload are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | None = None
    type: str | None = None
    role: Literal["assistant"] = "assistant"
    model: str | None = None
    content: tuple[Block, ...] = ()
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: dict[str, Any] | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> CompletionResponse:
        """Parse the service's raw JSON body.

        Raises:
            ResponseFormatError: If the body is not a dict, its content
                blocks are not recognised, or two tool_use blocks share an id.
        """
        if not isinstance(raw, dict):
            raise ResponseFormatError(
                f"Expected a JSON object from the completion service, "
                f"got {type(raw).__name__}"
            )
        try:
            response = cls.model_validate(raw)
        except ValidationError as exc:
            raise ResponseFormatError(
                f"Unexpected response format: {exc.error_count()} validation "
                f"error(s). Response: {raw}"
            ) from exc

        ids = [b.id for b in response.tool_uses()]
        if len(ids) != len(set(ids)):
            raise ResponseFormatError(
                f"Duplicate tool_use ids in response {response.id}: {ids}"
            )
        return response

    def to_message(self) -> Message:
        """Wrap the response content as a single assistant message."""
        return Message(role="assistant", content=self.content)

    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    def to_log_dict(self) -> dict[str, Any]:
        """Return the response fields recorded in the audit log."""
        return {
            "id": self.id,
            "type": self.type,
            "role": self.role,
            "content": [block_to_wire(b) for b in self.content],
            "model": self.model,
            "stop_reason": self.stop_reason,
            "stop_sequence": self.stop_sequence,
            "usage": self.usage,
        }
