"""Tests for agent error classification."""

import pytest

from claude_bridge.core.error_mapping import classify_agent_error, error_body
from claude_bridge.core.exceptions import (
    AgentProcessError,
    AgentTimeoutError,
    MalformedAgentOutputError,
)


def test_timeout_exception_maps_to_504():
    result = classify_agent_error(AgentTimeoutError("claude CLI timeout after 300s", timeout=300))

    assert result.status == 504
    assert result.type == "timeout_error"
    assert result.code == "timeout"
    assert result.session_expired is False


@pytest.mark.parametrize(
    "message",
    [
        "Rate limit exceeded",
        "You have exceeded your QUOTA",
        "In cooldown, try later",
        "Server at capacity",
        "Claude AI usage limit reached|1735689600",
        "Overloaded",
    ],
)
def test_rate_limit_phrases(message):
    result = classify_agent_error(AgentProcessError(message, returncode=1))

    assert result.status == 429
    assert result.type == "rate_limit_error"
    assert result.code == "rate_limit_exceeded"


@pytest.mark.parametrize(
    "message",
    [
        "Not authorized",
        "Invalid credentials",
        "Please run /login",
        "Authentication failed",
        "OAuth token has expired",
    ],
)
def test_auth_phrases(message):
    result = classify_agent_error(AgentProcessError(message))

    assert result.status == 401
    assert result.type == "authentication_error"
    assert result.code == "invalid_api_key"
    assert "claude login" in result.message


def test_timeout_phrase_in_process_error():
    result = classify_agent_error(AgentProcessError("connect ETIMEDOUT 1.2.3.4:443"))
    assert result.status == 504
    assert result.code == "timeout"


@pytest.mark.parametrize(
    "message",
    [
        "No conversation found with session ID: abc",
        "Session not found",
        "session expired",
        "Invalid session",
        "Session is corrupted",
    ],
)
def test_session_phrases(message):
    result = classify_agent_error(AgentProcessError(message))

    assert result.status == 502
    assert result.type == "server_error"
    assert result.code == "session_expired"
    assert result.session_expired is True


@pytest.mark.parametrize(
    "message",
    [
        "something about the session",
        '{"type":"result","is_error":true,"result":"boom","session_id":"abc"}',
    ],
)
def test_mentioning_a_session_is_not_session_expiry(message):
    result = classify_agent_error(AgentProcessError(message))

    assert result.code == "internal_error"
    assert result.session_expired is False


def test_rate_limit_checked_before_session():
    result = classify_agent_error(AgentProcessError("rate limit hit for session abc"))
    assert result.code == "rate_limit_exceeded"
    assert result.session_expired is False


def test_other_errors_are_internal():
    result = classify_agent_error(AgentProcessError("segfault", returncode=139))

    assert result.status == 502
    assert result.type == "server_error"
    assert result.code == "internal_error"
    assert result.message == "Claude CLI error: segfault"


def test_internal_message_is_truncated():
    result = classify_agent_error(MalformedAgentOutputError("x" * 1000))
    assert result.message == "Claude CLI error: " + "x" * 200


def test_plain_exceptions_are_classified():
    result = classify_agent_error(RuntimeError("boom"))
    assert result.code == "internal_error"


def test_to_body_envelope():
    body = classify_agent_error(AgentTimeoutError("t")).to_body()
    assert body == {
        "error": {"message": "Claude CLI timeout", "type": "timeout_error", "code": "timeout"}
    }


def test_error_body():
    assert error_body("bad", "invalid_request_error", "parse_error") == {
        "error": {"message": "bad", "type": "invalid_request_error", "code": "parse_error"}
    }
