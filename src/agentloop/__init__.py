"""Agentloop: a multi-turn tool-calling loop for LLM completion services.

The Orchestrator sends a growing transcript to a completion service,
executes the tools it asks for, feeds the results back and stops when the
model stops asking. Every protocol event lands in an append-only audit log.
"""

__version__ = "0.1.0"

# Core entry point
from agentloop.orchestrator import (
    EndReason,
    Orchestrator,
    SessionConfig,
    SessionResult,
    SessionState,
    run_session,
)

# Content and audit models
from agentloop.models import (
    AuditEntry,
    AuditEventType,
    Block,
    CompletionResponse,
    Message,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

# Collaborators
from agentloop.audit import (
    AuditLog,
    JsonlAuditLog,
    MemoryAuditLog,
    read_audit_log,
    replay_transcript,
)
from agentloop.llm import AnthropicClient, CompletionClient
from agentloop.toolkit import ToolRegistry, ToolSpec, default_registry
from agentloop.transcript import TranscriptStore

# Exceptions
from agentloop.exceptions import (
    AgentLoopError,
    DuplicateToolError,
    InvalidArgumentsError,
    OrchestratorError,
    RoleSequenceError,
    SessionCancelledError,
    ToolError,
    ToolExecutionError,
    ToolPairingError,
    TranscriptError,
    TurnLimitExceededError,
    UnknownToolError,
)
from agentloop.llm.errors import (
    AuthError,
    CompletionError,
    ConfigError,
    ResponseFormatError,
    ServiceError,
    TransportError,
)

__all__ = [
    "__version__",
    # Core
    "Orchestrator",
    "SessionConfig",
    "SessionResult",
    "SessionState",
    "EndReason",
    "run_session",
    # Models
    "AuditEntry",
    "AuditEventType",
    "Block",
    "CompletionResponse",
    "Message",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    # Collaborators
    "AuditLog",
    "JsonlAuditLog",
    "MemoryAuditLog",
    "read_audit_log",
    "replay_transcript",
    "AnthropicClient",
    "CompletionClient",
    "ToolRegistry",
    "ToolSpec",
    "default_registry",
    "TranscriptStore",
    # Exceptions
    "AgentLoopError",
    "TranscriptError",
    "RoleSequenceError",
    "ToolPairingError",
    "ToolError",
    "DuplicateToolError",
    "UnknownToolError",
    "InvalidArgumentsError",
    "ToolExecutionError",
    "OrchestratorError",
    "TurnLimitExceededError",
    "SessionCancelledError",
    "CompletionError",
    "ConfigError",
    "TransportError",
    "ServiceError",
    "AuthError",
    "ResponseFormatError",
]
