"""Orchestrator package -- the turn state machine and its configuration.

Provides the Orchestrator class, SessionConfig, state/end-reason enums,
the SessionResult model and the ``run_session`` convenience wrapper.
"""

from agentloop.orchestrator.config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    EndReason,
    SessionConfig,
    SessionState,
)
from agentloop.orchestrator.loop import Orchestrator
from agentloop.orchestrator.models import SessionResult
from agentloop.orchestrator.session import run_session

__all__ = [
    # Core
    "Orchestrator",
    "run_session",
    # Config
    "SessionConfig",
    "SessionState",
    "EndReason",
    "DEFAULT_MODEL",
    "DEFAULT_MAX_TOKENS",
    # Models
    "SessionResult",
]
