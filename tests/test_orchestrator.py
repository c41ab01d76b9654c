"""Tests for the Orchestrator tool-dispatch loop.

Covers:
- Single-turn and multi-turn sessions, final text
- Tool results ordered by declaration, sequential and concurrent
- Service errors, tool errors (isolated and propagated), turn limits
- Cancellation and keyboard interrupts
- Audit trail shape: one error entry per failure, session_end last
- Replay of the audit trail reproduces the transcript
"""

from __future__ import annotations

import threading

import pytest
from hypothesis import given, settings

from agentloop.audit import (
    JsonlAuditLog,
    MemoryAuditLog,
    read_audit_log,
    replay_transcript,
)
from agentloop.exceptions import (
    OrchestratorError,
    RoleSequenceError,
    TurnLimitExceededError,
    UnknownToolError,
)
from agentloop.llm.errors import ResponseFormatError, ServiceError, TransportError
from agentloop.models.audit import AuditEventType
from agentloop.models.content import ToolResultBlock
from agentloop.orchestrator import (
    EndReason,
    Orchestrator,
    SessionConfig,
    SessionState,
    run_session,
)
from agentloop.toolkit import ToolRegistry, ToolSpec
from agentloop.transcript import TranscriptStore
from tests.helpers import ECHO, PING, FakeClient, text_response, tool_response
from tests.strategies import scripted_turns


def _types(audit) -> list[str]:
    return [e.type.value for e in audit.entries()]


def _entries(audit, event: AuditEventType) -> list:
    return [e for e in audit.entries() if e.type == event]


# ===========================================================================
# Happy paths
# ===========================================================================


class TestSingleTool:
    def test_echo_round_trip(self, registry, audit):
        client = FakeClient(
            [
                tool_response([("echo", {"message": "hi"}, "toolu_1")]),
                text_response("The echo said hi."),
            ]
        )
        result = Orchestrator(client, registry, audit).run("echo hi")

        assert result.state == SessionState.DONE
        assert result.reason == EndReason.NO_MORE_TOOL_CALLS
        assert result.succeeded
        assert result.final_text == "The echo said hi."
        assert result.turns == 2

        second = client.requests[1]["messages"]
        assert second[-1] == {
            "role": "user",
            "content": [
                {"type": "tool_result", "tool_use_id": "toolu_1", "content": "Echo: hi"}
            ],
        }

    def test_no_tools_requested(self, registry, audit):
        client = FakeClient([text_response("Hello there")])
        result = Orchestrator(client, registry, audit).run("hi")

        assert result.state == SessionState.DONE
        assert result.turns == 1
        assert [m.role for m in result.transcript] == ["user", "assistant"]
        assert _types(audit) == [
            "session_start",
            "api_request",
            "api_response",
            "session_end",
        ]

    def test_request_carries_schemas_and_config(self, registry, audit):
        client = FakeClient([text_response()])
        config = SessionConfig(model="claude-x", max_tokens=99, system_prompt="Terse.")
        Orchestrator(client, registry, audit, config).run("hi")

        request = client.requests[0]
        assert request["model"] == "claude-x"
        assert request["max_tokens"] == 99
        assert request["system"] == "Terse."
        assert [t["name"] for t in request["tools"]] == ["echo", "ping"]
        assert request["messages"] == [
            {"role": "user", "content": [{"type": "text", "text": "hi"}]}
        ]

    def test_session_start_payload(self, registry, audit):
        Orchestrator(FakeClient([text_response()]), registry, audit).run("hello")
        start = audit.entries()[0]
        assert start.type == AuditEventType.SESSION_START
        assert start.turn is None
        assert start.payload["initial_prompt"] == "hello"
        assert start.payload["tools"] == ["echo", "ping"]

    def test_session_end_payload(self, registry, audit):
        client = FakeClient(
            [tool_response([("echo", {"message": "a"}, "t1")]), text_response()]
        )
        Orchestrator(client, registry, audit).run("go")
        end = audit.entries()[-1]
        assert end.type == AuditEventType.SESSION_END
        assert end.payload == {
            "reason": "no_more_tool_calls",
            "total_turns": 2,
            "stop_reason": "end_turn",
        }

    def test_stop_reason_does_not_decide_termination(self, registry, audit):
        # A response without tool uses ends the session whatever its stop_reason.
        client = FakeClient([text_response("cut", stop_reason="max_tokens")])
        result = Orchestrator(client, registry, audit).run("hi")
        assert result.state == SessionState.DONE


class TestMultipleTools:
    def test_results_in_declaration_order(self, registry, audit):
        client = FakeClient(
            [
                tool_response(
                    [
                        ("ping", {"host": "A"}, "a"),
                        ("echo", {"message": "m"}, "b"),
                        ("ping", {"host": "C"}, "c"),
                    ]
                ),
                text_response(),
            ]
        )
        result = Orchestrator(client, registry, audit).run("go")

        results = result.transcript[2].results()
        assert [r.tool_use_id for r in results] == ["a", "b", "c"]
        assert [i.tool_use_id for i in result.invocations] == ["a", "b", "c"]

    def test_parallel_results_keep_declaration_order(self, audit):
        b_done = threading.Event()

        def slow_ping(host):
            if host == "A":
                # A finishes only after B has completed
                assert b_done.wait(timeout=5)
            else:
                b_done.set()
            return f"PING {host}: ok"

        reg = ToolRegistry()
        reg.register(PING, slow_ping)
        client = FakeClient(
            [
                tool_response([("ping", {"host": "A"}, "a"), ("ping", {"host": "B"}, "b")]),
                text_response(),
            ]
        )
        config = SessionConfig(max_parallel_tools=2)
        result = Orchestrator(client, reg, audit, config).run("ping A and B")

        assert result.state == SessionState.DONE
        finished = [e.payload["tool"]["id"] for e in _entries(audit, AuditEventType.TOOL_RESULT)]
        assert finished == ["b", "a"]
        assert result.transcript[2].results() == [
            ToolResultBlock(tool_use_id="a", content="PING A: ok"),
            ToolResultBlock(tool_use_id="b", content="PING B: ok"),
        ]

    def test_tool_call_logged_before_result(self, registry, audit):
        client = FakeClient(
            [tool_response([("echo", {"message": "x"}, "t1")]), text_response()]
        )
        Orchestrator(client, registry, audit).run("go")
        assert _types(audit) == [
            "session_start",
            "api_request",
            "api_response",
            "tool_call",
            "tool_result",
            "api_request",
            "api_response",
            "session_end",
        ]
        call = _entries(audit, AuditEventType.TOOL_CALL)[0]
        assert call.turn == 1
        assert call.payload["tool"] == {"id": "t1", "name": "echo", "input": {"message": "x"}}

    def test_transcript_alternates_and_pairs(self, registry, audit):
        client = FakeClient(
            [
                tool_response([("echo", {"message": "1"}, "t1")]),
                tool_response([("ping", {"host": "h"}, "t2"), ("echo", {"message": "2"}, "t3")]),
                text_response(),
            ]
        )
        result = Orchestrator(client, registry, audit).run("go")
        messages = result.transcript
        assert [m.role for m in messages] == ["user", "assistant"] * 3
        for prev, nxt in zip(messages, messages[1:]):
            if prev.role == "assistant":
                assert [r.tool_use_id for r in nxt.results()] == [
                    u.id for u in prev.tool_uses()
                ]

    def test_replay_matches_transcript(self, registry, audit):
        client = FakeClient(
            [
                tool_response([("echo", {"message": "1"}, "t1")], text="Let me check"),
                tool_response([("ping", {"host": "h"}, "t2"), ("nope", {}, "t3")]),
                text_response("Done"),
            ]
        )
        result = Orchestrator(client, registry, audit).run("go")
        assert replay_transcript(audit.entries()) == result.transcript


# ===========================================================================
# Tool errors
# ===========================================================================


class TestToolErrors:
    def test_unknown_tool_isolated(self, registry, audit):
        client = FakeClient(
            [tool_response([("traceroute", {"host": "a"}, "t1")]), text_response("Sorry")]
        )
        result = Orchestrator(client, registry, audit).run("trace")

        assert result.state == SessionState.DONE
        block = result.transcript[2].results()[0]
        assert block.is_error is True
        assert block.content == "Error: UnknownToolError: Unknown tool: traceroute"
        assert client.requests[1]["messages"][-1]["content"][0]["is_error"] is True
        assert _entries(audit, AuditEventType.ERROR) == []

    def test_missing_argument_isolated(self, registry, audit):
        client = FakeClient([tool_response([("echo", {}, "t1")]), text_response()])
        result = Orchestrator(client, registry, audit).run("echo")
        block = result.transcript[2].results()[0]
        assert block.is_error
        assert "InvalidArgumentsError" in block.content

    def test_failing_tool_isolated(self, audit):
        reg = ToolRegistry()

        def broken(host):
            raise OSError("network down")

        reg.register(PING, broken)
        client = FakeClient([tool_response([("ping", {"host": "h"}, "t1")]), text_response()])
        result = Orchestrator(client, reg, audit).run("ping")

        assert result.state == SessionState.DONE
        assert result.invocations[0].is_error
        assert "network down" in result.invocations[0].output

    def test_non_object_input_isolated(self, registry, audit):
        client = FakeClient([tool_response([("echo", "hi", "t1")]), text_response("ok")])
        result = Orchestrator(client, registry, audit).run("echo hi")

        assert result.state == SessionState.DONE
        block = result.transcript[2].results()[0]
        assert block.is_error is True
        assert block.content == (
            "Error: InvalidArgumentsError: Invalid arguments for echo: "
            "expected an object, got str"
        )
        assert result.transcript[1].tool_uses()[0].input == "hi"
        assert replay_transcript(audit.entries()) == result.transcript

    def test_tool_cannot_mutate_recorded_input(self, audit):
        reg = ToolRegistry()
        spec = ToolSpec(
            "collect",
            "Append to a list",
            {"type": "object", "properties": {"xs": {"type": "array"}}, "required": ["xs"]},
        )

        def collect(xs):
            xs.append(99)
            return len(xs)

        reg.register(spec, collect)
        client = FakeClient(
            [tool_response([("collect", {"xs": [1]}, "t1")]), text_response()]
        )
        result = Orchestrator(client, reg, audit).run("collect")

        assert result.transcript[2].results()[0].content == "2"
        assert result.transcript[1].tool_uses()[0].input == {"xs": [1]}
        assert client.requests[1]["messages"][1]["content"][0]["input"] == {"xs": [1]}
        call = _entries(audit, AuditEventType.TOOL_CALL)[0]
        assert call.payload["tool"]["input"] == {"xs": [1]}
        assert result.invocations[0].input == {"xs": [1]}

    def test_unknown_tool_propagated(self, registry, audit):
        client = FakeClient([tool_response([("traceroute", {}, "t1")]), text_response()])
        config = SessionConfig(isolate_tool_errors=False)
        result = Orchestrator(client, registry, audit, config).run("trace")

        assert result.state == SessionState.FAILED
        assert result.reason == EndReason.TOOL_ERROR
        assert isinstance(result.error, UnknownToolError)
        assert client.call_count == 1
        errors = _entries(audit, AuditEventType.ERROR)
        assert len(errors) == 1
        assert errors[0].turn == 1
        assert errors[0].payload["error"]["name"] == "UnknownToolError"
        assert _types(audit)[-2:] == ["error", "session_end"]
        assert _entries(audit, AuditEventType.TOOL_RESULT) == []


# ===========================================================================
# Service errors
# ===========================================================================


class TestServiceErrors:
    def test_failure_on_second_request(self, registry, audit):
        client = FakeClient(
            [
                tool_response([("echo", {"message": "hi"}, "t1")]),
                ServiceError("overloaded", status_code=529),
            ]
        )
        result = Orchestrator(client, registry, audit).run("echo hi")

        assert result.state == SessionState.FAILED
        assert result.reason == EndReason.SERVICE_ERROR
        assert result.turns == 2
        assert client.call_count == 2

        types = _types(audit)
        assert types.count("error") == 1
        assert types[-2:] == ["error", "session_end"]
        error_idx = types.index("error")
        assert "api_request" not in types[error_idx:]
        assert audit.entries()[-1].payload == {"reason": "service_error", "total_turns": 2}

    def test_transport_error(self, registry, audit):
        result = Orchestrator(
            FakeClient([TransportError("connection refused")]), registry, audit
        ).run("hi")
        assert result.reason == EndReason.SERVICE_ERROR
        assert result.error_message == "TransportError: connection refused"

    def test_unexpected_client_exception_wrapped(self, registry, audit):
        result = Orchestrator(
            FakeClient([RuntimeError("socket closed")]), registry, audit
        ).run("hi")
        assert result.reason == EndReason.SERVICE_ERROR
        assert isinstance(result.error, ServiceError)
        assert isinstance(result.error.__cause__, RuntimeError)

    def test_malformed_response(self, registry, audit):
        result = Orchestrator(FakeClient([{"content": "nope"}]), registry, audit).run("hi")
        assert result.reason == EndReason.SERVICE_ERROR
        assert _entries(audit, AuditEventType.API_RESPONSE) == []
        assert len(_entries(audit, AuditEventType.ERROR)) == 1


# ===========================================================================
# Limits and cancellation
# ===========================================================================


class TestLimits:
    def test_turn_limit(self, registry, audit):
        client = FakeClient([tool_response([("echo", {"message": "again"}, "t1")])])
        config = SessionConfig(max_turns=3)
        result = Orchestrator(client, registry, audit, config).run("loop")

        assert result.state == SessionState.FAILED
        assert result.reason == EndReason.TURN_LIMIT_EXCEEDED
        assert isinstance(result.error, TurnLimitExceededError)
        assert client.call_count == 3
        assert result.turns == 3
        # The transcript ends cleanly after the last tool results
        assert result.transcript[-1].role == "user"

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_turns": 0}, {"max_parallel_tools": 0}, {"max_tokens": 0}],
    )
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            SessionConfig(**kwargs)


class TestCancellation:
    def test_cancel_between_turns(self, audit):
        reg = ToolRegistry()
        client = FakeClient(
            [tool_response([("echo", {"message": "x"}, "t1")]), text_response()]
        )
        orch = Orchestrator(client, reg, audit)

        def echo_then_cancel(message):
            orch.cancel()
            return message

        reg.register(ECHO, echo_then_cancel)
        result = orch.run("go")

        assert result.state == SessionState.FAILED
        assert result.reason == EndReason.CANCELLED
        assert client.call_count == 1
        assert [m.role for m in result.transcript] == ["user", "assistant", "user"]

    def test_cancel_between_tool_calls(self, audit):
        reg = ToolRegistry()
        client = FakeClient(
            [
                tool_response([("echo", {"message": "1"}, "t1"), ("echo", {"message": "2"}, "t2")]),
                text_response(),
            ]
        )
        orch = Orchestrator(client, reg, audit)
        calls = []

        def echo_then_cancel(message):
            calls.append(message)
            orch.cancel()
            return message

        reg.register(ECHO, echo_then_cancel)
        result = orch.run("go")

        assert result.reason == EndReason.CANCELLED
        assert calls == ["1"]
        assert len(_entries(audit, AuditEventType.TOOL_RESULT)) == 1

    def test_keyboard_interrupt(self, registry, audit):
        result = Orchestrator(FakeClient([KeyboardInterrupt()]), registry, audit).run("hi")
        assert result.state == SessionState.FAILED
        assert result.reason == EndReason.CANCELLED
        assert _types(audit)[-2:] == ["error", "session_end"]


# ===========================================================================
# Misuse and internal errors
# ===========================================================================


class TestLifecycle:
    def test_single_use(self, registry, audit):
        orch = Orchestrator(FakeClient([text_response()]), registry, audit)
        orch.run("hi")
        with pytest.raises(OrchestratorError):
            orch.run("again")

    def test_state_transitions(self, registry, audit):
        orch = Orchestrator(FakeClient([text_response()]), registry, audit)
        assert orch.state == SessionState.INIT
        orch.run("hi")
        assert orch.state == SessionState.DONE
        assert orch.state.is_terminal

    def test_duplicate_tool_use_ids_fail_as_service_error(self, registry, audit):
        client = FakeClient(
            [tool_response([("echo", {"message": "a"}, "t1"), ("echo", {"message": "b"}, "t1")])]
        )
        result = Orchestrator(client, registry, audit).run("go")

        assert result.state == SessionState.FAILED
        assert result.reason == EndReason.SERVICE_ERROR
        assert isinstance(result.error, ResponseFormatError)
        assert [m.role for m in result.transcript] == ["user"]
        assert _types(audit)[-2:] == ["error", "session_end"]
        assert len(_entries(audit, AuditEventType.ERROR)) == 1
        assert _entries(audit, AuditEventType.TOOL_CALL) == []

    def test_broken_transcript_invariant_is_internal_error(
        self, registry, audit, monkeypatch
    ):
        class RejectingStore(TranscriptStore):
            def append(self, message):
                if message.role == "assistant":
                    raise RoleSequenceError(message.role, "assistant")
                super().append(message)

        monkeypatch.setattr("agentloop.orchestrator.loop.TranscriptStore", RejectingStore)
        orch = Orchestrator(FakeClient([text_response()]), registry, audit)
        with pytest.raises(RoleSequenceError):
            orch.run("go")
        assert orch.state == SessionState.FAILED
        assert audit.entries()[-1].payload["reason"] == "internal_error"
        assert len(_entries(audit, AuditEventType.ERROR)) == 1

    def test_default_audit_log_is_in_memory(self, registry):
        orch = Orchestrator(FakeClient([text_response()]), registry)
        result = orch.run("hi")
        assert result.audit_location is None
        assert len(orch.audit_log.entries()) == 4


# ===========================================================================
# File-backed sessions
# ===========================================================================


class TestFileSessions:
    def test_jsonl_log_end_to_end(self, registry, tmp_path):
        audit = JsonlAuditLog(tmp_path)
        client = FakeClient(
            [tool_response([("echo", {"message": "hi"}, "t1")]), text_response("ok")]
        )
        result = Orchestrator(client, registry, audit).run("echo hi")
        audit.close()

        assert result.audit_location == str(audit.path)
        entries = read_audit_log(audit.path)
        assert entries[0].payload["log_file"] == str(audit.path)
        assert replay_transcript(entries) == result.transcript

    def test_run_session(self, tmp_path):
        seen = []
        client = FakeClient(
            [tool_response([("echo", {"message": "hi"}, "t1")]), text_response("done")]
        )
        result = run_session(
            "echo hi", client=client, log_dir=str(tmp_path), listeners=[seen.append]
        )

        assert result.succeeded
        assert result.final_text == "done"
        assert result.transcript[2].results()[0].content == "Echo: hi"
        assert len(seen) == 8
        assert len(list(tmp_path.glob("agent-session-*.log"))) == 1
        # Caller-supplied clients are left open
        assert client.closed is False


# ---------------------------------------------------------------------------
# Property-based
# ---------------------------------------------------------------------------


@settings(max_examples=50, deadline=None)
@given(scripted_turns)
def test_scripted_sessions_pair_and_replay(turns):
    """Any tool-calling script ends DONE with a replayable, paired transcript."""
    reg = ToolRegistry()
    reg.register(ECHO, lambda message: f"Echo: {message}")
    responses = [
        tool_response(
            [("echo", {"message": m}, f"t{turn}_{i}") for i, m in enumerate(messages)]
        )
        if messages
        else text_response("interim")
        for turn, messages in enumerate(turns)
    ]
    # The first text-only response ends the session
    responses.append(text_response("final"))
    expected_turns = next(
        (i + 1 for i, messages in enumerate(turns) if not messages), len(turns) + 1
    )

    audit = MemoryAuditLog()
    client = FakeClient(responses)
    result = Orchestrator(client, reg, audit).run("go")

    assert result.state == SessionState.DONE
    assert result.turns == expected_turns == client.call_count
    assert replay_transcript(audit.entries()) == result.transcript
    messages = result.transcript
    for prev, nxt in zip(messages, messages[1:]):
        if prev.role == "assistant":
            assert [r.tool_use_id for r in nxt.results()] == [
                u.id for u in prev.tool_uses()
            ]
