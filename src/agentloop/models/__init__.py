"""Data models: content blocks, messages, completion responses, audit entries."""

from agentloop.models.audit import AuditEntry, AuditEventType
from agentloop.models.content import (
    Block,
    CompletionResponse,
    Message,
    Role,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    block_to_wire,
    parse_block,
)

__all__ = [
    "AuditEntry",
    "AuditEventType",
    "Block",
    "CompletionResponse",
    "Message",
    "Role",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    "block_to_wire",
    "parse_block",
]
