"""Completion-service error hierarchy.

All completion errors inherit from AgentLoopError for consistent exception
handling. None of them are retried by the session loop.
"""

from __future__ import annotations

from agentloop.exceptions import AgentLoopError


class CompletionError(AgentLoopError):
    """Base for all completion client errors."""


class ConfigError(CompletionError):
    """Missing or invalid client configuration (e.g., no API key)."""


class TransportError(CompletionError):
    """The completion service could not be reached (connect, timeout, network)."""


class ServiceError(CompletionError):
    """The completion service answered with an error.

    Attributes:
        status_code: HTTP status code, or None when the error was raised
            for a malformed body on a successful status.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class AuthError(ServiceError):
    """Authentication failed (401/403)."""


class ResponseFormatError(ServiceError):
    """Unexpected response format from the completion service."""
