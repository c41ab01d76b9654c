"""Core tool-dispatch loop.

Provides the Orchestrator class that runs one session: send the transcript
and tool schemas to the completion service, append the reply, execute any
requested tools, append their results as a single user message, and repeat
until the model stops requesting tools.

The loop only suspends while waiting on the completion service and while
waiting on tool execution. Tool calls of one turn may run on a thread pool;
their results are always appended in the order the calls were declared.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
import traceback
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from agentloop.audit.sinks import MemoryAuditLog
from agentloop.exceptions import (
    OrchestratorError,
    SessionCancelledError,
    ToolError,
    TranscriptError,
    TurnLimitExceededError,
)
from agentloop.llm.errors import CompletionError, ServiceError
from agentloop.models.audit import AuditEventType
from agentloop.models.content import (
    CompletionResponse,
    Message,
    ToolResultBlock,
    ToolUseBlock,
)
from agentloop.orchestrator.config import EndReason, SessionConfig, SessionState
from agentloop.orchestrator.models import SessionResult
from agentloop.toolkit.models import ToolInvocation
from agentloop.transcript import TranscriptStore

if TYPE_CHECKING:
    from agentloop.audit.sinks import AuditLog
    from agentloop.llm.protocols import CompletionClient
    from agentloop.toolkit.registry import ToolRegistry

logger = logging.getLogger(__name__)


class Orchestrator:
    """Drives a single session through the turn state machine.

    The orchestrator exclusively owns its transcript and turn counter. The
    tool registry is read-only configuration and the audit log is a
    write-only sink; both, like the completion client, are passed in so
    sessions share no global state.

    Usage::

        from agentloop import Orchestrator, SessionConfig, default_registry

        orch = Orchestrator(client, default_registry(), audit_log)
        result = orch.run("echo hi")
        print(result.state, result.final_text)
    """

    def __init__(
        self,
        client: CompletionClient,
        registry: ToolRegistry,
        audit_log: AuditLog | None = None,
        config: SessionConfig | None = None,
    ) -> None:
        self._client = client
        self._registry = registry
        self._audit = audit_log if audit_log is not None else MemoryAuditLog()
        self._config = config or SessionConfig()
        self._transcript = TranscriptStore()
        self._state = SessionState.INIT
        self._turn = 0
        self._invocations: list[ToolInvocation] = []
        self._cancel_event = threading.Event()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """Return the current session state."""
        return self._state

    @property
    def turn(self) -> int:
        """Number of request/response exchanges started so far."""
        return self._turn

    @property
    def transcript(self) -> tuple[Message, ...]:
        return self._transcript.snapshot()

    @property
    def audit_log(self) -> AuditLog:
        return self._audit

    @property
    def config(self) -> SessionConfig:
        return self._config

    def cancel(self) -> None:
        """Request cancellation from any thread.

        The session ends FAILED with reason ``cancelled`` before its next
        request or tool invocation.
        """
        self._cancel_event.set()

    def run(self, prompt: str) -> SessionResult:
        """Run the session to completion.

        Args:
            prompt: The initial free-text user prompt.

        Returns:
            SessionResult in state DONE (the model stopped requesting tools)
            or FAILED (service error, tool error when not isolated, turn
            limit, or cancellation).

        Raises:
            OrchestratorError: If this orchestrator already ran a session.
            TranscriptError: If a transcript invariant is broken. This is
                a bug in the loop and is recorded before being re-raised.
        """
        if self._state != SessionState.INIT:
            raise OrchestratorError(
                f"Session already started (state={self._state.value}); "
                f"create a new Orchestrator per session."
            )

        self._transcript.append(Message.user_text(prompt))
        self._audit.record(
            AuditEventType.SESSION_START,
            {
                "initial_prompt": prompt,
                "model": self._config.model,
                "tools": self._registry.tool_names(),
                "log_file": self._audit.location,
            },
        )

        try:
            while True:
                self._check_cancelled()
                if (
                    self._config.max_turns is not None
                    and self._turn >= self._config.max_turns
                ):
                    raise TurnLimitExceededError(self._config.max_turns)

                self._turn += 1
                self._set_state(SessionState.REQUESTING)
                response = self._request()
                self._transcript.append(response.to_message())

                tool_uses = response.tool_uses()
                if not tool_uses:
                    return self._finish(response)

                self._set_state(SessionState.DISPATCHING)
                results = self._dispatch(tool_uses)
                self._transcript.append(Message.tool_results(results))
        except CompletionError as exc:
            return self._fail(EndReason.SERVICE_ERROR, exc)
        except ToolError as exc:
            return self._fail(EndReason.TOOL_ERROR, exc)
        except TurnLimitExceededError as exc:
            return self._fail(EndReason.TURN_LIMIT_EXCEEDED, exc)
        except SessionCancelledError as exc:
            return self._fail(EndReason.CANCELLED, exc)
        except KeyboardInterrupt:
            return self._fail(
                EndReason.CANCELLED, SessionCancelledError("Interrupted by user")
            )
        except TranscriptError as exc:
            self._fail(EndReason.INTERNAL_ERROR, exc)
            raise

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        logger.debug(
            "Turn %d: %s -> %s", self._turn, self._state.value, state.value
        )
        self._state = state

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise SessionCancelledError()

    def _request(self) -> CompletionResponse:
        """REQUESTING: send snapshot + schemas, parse the reply."""
        messages = self._transcript.to_wire()
        tools = [spec.to_anthropic() for spec in self._registry.schemas()]
        request: dict[str, Any] = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "messages": messages,
            "tools": tools,
        }
        if self._config.system_prompt:
            request["system"] = self._config.system_prompt
        self._audit.record(AuditEventType.API_REQUEST, {"request": request}, self._turn)

        try:
            raw = self._client.create_message(**request)
        except CompletionError:
            raise
        except Exception as exc:
            raise ServiceError(
                f"Completion client failed: {type(exc).__name__}: {exc}"
            ) from exc

        response = CompletionResponse.from_raw(raw)
        self._audit.record(
            AuditEventType.API_RESPONSE,
            {"response": response.to_log_dict()},
            self._turn,
        )
        return response

    def _dispatch(self, tool_uses: list[ToolUseBlock]) -> list[ToolResultBlock]:
        """DISPATCHING: execute every tool call, return results in call order."""
        workers = min(self._config.max_parallel_tools, len(tool_uses))
        if workers > 1:
            self._check_cancelled()
            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="agentloop-tool"
            ) as pool:
                futures = [pool.submit(self._invoke, tu) for tu in tool_uses]
                outcomes = [f.result() for f in futures]
        else:
            outcomes = []
            for tu in tool_uses:
                self._check_cancelled()
                outcomes.append(self._invoke(tu))

        results: list[ToolResultBlock] = []
        for block, invocation in outcomes:
            results.append(block)
            self._invocations.append(invocation)
        return results

    def _invoke(self, tool_use: ToolUseBlock) -> tuple[ToolResultBlock, ToolInvocation]:
        """Run one tool call, logging ``tool_call`` before and ``tool_result`` after."""
        turn = self._turn
        self._audit.record(
            AuditEventType.TOOL_CALL,
            {
                "tool": {
                    "id": tool_use.id,
                    "name": tool_use.name,
                    "input": copy.deepcopy(tool_use.input),
                }
            },
            turn,
        )

        start = time.perf_counter()
        try:
            output = self._registry.invoke(tool_use.name, tool_use.input)
            is_error = False
        except ToolError as exc:
            if not self._config.isolate_tool_errors:
                raise
            logger.info("Tool call %s (%s) failed: %s", tool_use.id, tool_use.name, exc)
            output = f"Error: {type(exc).__name__}: {exc}"
            is_error = True
        duration_ms = int((time.perf_counter() - start) * 1000)

        self._audit.record(
            AuditEventType.TOOL_RESULT,
            {
                "tool": {
                    "id": tool_use.id,
                    "name": tool_use.name,
                    "output": output,
                    "is_error": is_error,
                    "duration_ms": duration_ms,
                }
            },
            turn,
        )
        block = ToolResultBlock(
            tool_use_id=tool_use.id, content=output, is_error=is_error
        )
        invocation = ToolInvocation(
            turn=turn,
            tool_use_id=tool_use.id,
            name=tool_use.name,
            input=copy.deepcopy(tool_use.input),
            output=output,
            is_error=is_error,
            duration_ms=duration_ms,
        )
        return block, invocation

    def _finish(self, response: CompletionResponse) -> SessionResult:
        """DONE: the model produced no tool calls."""
        self._set_state(SessionState.DONE)
        self._audit.record(
            AuditEventType.SESSION_END,
            {
                "reason": EndReason.NO_MORE_TOOL_CALLS.value,
                "total_turns": self._turn,
                "stop_reason": response.stop_reason,
            },
        )
        return self._result(EndReason.NO_MORE_TOOL_CALLS)

    def _fail(self, reason: EndReason, exc: BaseException) -> SessionResult:
        """FAILED: record exactly one ``error`` entry, then ``session_end``."""
        self._set_state(SessionState.FAILED)
        logger.debug("Session failed (%s): %s", reason.value, exc)
        self._audit.record(
            AuditEventType.ERROR,
            {
                "error": {
                    "name": type(exc).__name__,
                    "message": str(exc),
                    "stack": "".join(
                        traceback.format_exception(type(exc), exc, exc.__traceback__)
                    ),
                }
            },
            self._turn or None,
        )
        self._audit.record(
            AuditEventType.SESSION_END,
            {"reason": reason.value, "total_turns": self._turn},
        )
        return self._result(reason, error=exc)

    def _result(
        self, reason: EndReason, error: BaseException | None = None
    ) -> SessionResult:
        final_text = ""
        for message in reversed(self._transcript.snapshot()):
            if message.role == "assistant":
                final_text = message.text()
                break
        return SessionResult(
            state=self._state,
            reason=reason,
            final_text=final_text,
            error=error,
            audit_location=self._audit.location,
            transcript=self._transcript.snapshot(),
            turns=self._turn,
            invocations=tuple(self._invocations),
        )
