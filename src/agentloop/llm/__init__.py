"""Completion service boundary.

Provides the CompletionClient protocol, an Anthropic Messages API client
built on httpx, and the completion error hierarchy.
"""

from agentloop.llm.client import AnthropicClient
from agentloop.llm.errors import (
    AuthError,
    CompletionError,
    ConfigError,
    ResponseFormatError,
    ServiceError,
    TransportError,
)
from agentloop.llm.protocols import CompletionClient

__all__ = [
    "AnthropicClient",
    "CompletionClient",
    "CompletionError",
    "ConfigError",
    "TransportError",
    "ServiceError",
    "AuthError",
    "ResponseFormatError",
]
