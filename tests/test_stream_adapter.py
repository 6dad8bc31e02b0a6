"""Tests for the claude stream-json to chat SSE adapter."""

import pytest

from claude_bridge.core.sse import SSE_DONE, parse_sse_frames
from claude_bridge.translation import AgentToChatStreamAdapter, ReasoningState, advance
from claude_bridge.testing import (
    build_block_start,
    build_block_stop,
    build_result_event,
    build_stream_events,
    build_text_delta,
    build_thinking_block,
)


async def _aiter(events):
    for event in events:
        yield event


async def _collect(adapter, events) -> bytes:
    return b"".join([frame async for frame in adapter.adapt_stream(_aiter(events))])


def _texts(frames: list) -> list[str]:
    return [
        frame["choices"][0]["delta"]["content"]
        for frame in frames
        if isinstance(frame, dict) and frame["choices"][0]["delta"].get("content")
    ]


class TestReasoningStateMachine:
    def test_thinking_block_opens_and_stop_closes(self):
        state, text = advance(ReasoningState.CLOSED, build_block_start(0, "thinking")["event"])
        assert state is ReasoningState.OPEN
        assert text is None

        state, text = advance(state, build_text_delta("hidden")["event"])
        assert state is ReasoningState.OPEN
        assert text is None

        state, text = advance(state, build_block_stop(0)["event"])
        assert state is ReasoningState.CLOSED
        assert text is None

    def test_redacted_thinking_also_opens(self):
        state, _ = advance(ReasoningState.CLOSED, build_block_start(0, "redacted_thinking")["event"])
        assert state is ReasoningState.OPEN

    def test_text_delta_forwarded_when_closed(self):
        state, text = advance(ReasoningState.CLOSED, build_text_delta("Hi")["event"])
        assert state is ReasoningState.CLOSED
        assert text == "Hi"

    def test_thinking_delta_outside_block_suppressed(self):
        inner = {"type": "content_block_delta", "delta": {"type": "thinking_delta", "thinking": "x"}}
        assert advance(ReasoningState.CLOSED, inner) == (ReasoningState.CLOSED, None)

    def test_empty_text_not_forwarded(self):
        assert advance(ReasoningState.CLOSED, build_text_delta("")["event"])[1] is None


@pytest.mark.asyncio
async def test_forwards_text_and_ends_with_done():
    adapter = AgentToChatStreamAdapter("claude-sonnet")
    body = await _collect(adapter, build_stream_events(["Hel", "lo"]))

    frames = parse_sse_frames(body)
    assert _texts(frames) == ["Hel", "lo"]
    assert frames[-2]["choices"][0]["finish_reason"] == "stop"
    assert frames[-2]["choices"][0]["delta"] == {}
    assert frames[-1] == "[DONE]"
    assert body.endswith(SSE_DONE)
    assert adapter.saw_result is True
    assert adapter.text_chunks == 2


@pytest.mark.asyncio
async def test_thinking_never_forwarded():
    adapter = AgentToChatStreamAdapter("claude-sonnet")
    body = await _collect(adapter, build_stream_events(["answer"], thinking="secret plan"))

    assert b"secret plan" not in body
    assert _texts(parse_sse_frames(body)) == ["answer"]
    assert adapter.suppressed_events > 0


@pytest.mark.asyncio
async def test_every_frame_shares_id_and_created():
    adapter = AgentToChatStreamAdapter("claude-opus", completion_id="chatcmpl-fixed")
    frames = [
        frame
        for frame in parse_sse_frames(await _collect(adapter, build_stream_events(["a", "b", "c"])))
        if isinstance(frame, dict)
    ]

    assert {frame["id"] for frame in frames} == {"chatcmpl-fixed"}
    assert len({frame["created"] for frame in frames}) == 1
    assert {frame["model"] for frame in frames} == {"claude-opus"}


@pytest.mark.asyncio
async def test_stops_consuming_at_result():
    events = build_stream_events(["one"]) + [build_text_delta("after result")]
    adapter = AgentToChatStreamAdapter("m")
    body = await _collect(adapter, events)

    assert b"after result" not in body
    assert parse_sse_frames(body).count("[DONE]") == 1


@pytest.mark.asyncio
async def test_error_result_finishes_with_error():
    adapter = AgentToChatStreamAdapter("m")
    body = await _collect(adapter, build_stream_events(["partial"], is_error=True))

    frames = parse_sse_frames(body)
    assert frames[-2]["choices"][0]["finish_reason"] == "error"
    assert frames[-1] == "[DONE]"


@pytest.mark.asyncio
async def test_missing_result_still_terminates():
    events = [build_text_delta("orphan")]
    finished = []
    adapter = AgentToChatStreamAdapter("m", on_finish=finished.append)
    body = await _collect(adapter, events)

    frames = parse_sse_frames(body)
    assert _texts(frames) == ["orphan"]
    assert frames[-2]["choices"][0]["finish_reason"] == "stop"
    assert frames[-1] == "[DONE]"
    assert adapter.saw_result is False
    assert finished == [None]


@pytest.mark.asyncio
async def test_on_finish_runs_before_terminal_frame():
    seen = []
    adapter = AgentToChatStreamAdapter("m", on_finish=lambda result: seen.append(result["result"]))
    frames = []
    async for frame in adapter.adapt_stream(_aiter([build_text_delta("x"), build_result_event("x")])):
        frames.append(frame)
        if frame.endswith(SSE_DONE):
            assert seen == ["x"]

    assert seen == ["x"]


@pytest.mark.asyncio
async def test_ignores_incidental_event_kinds():
    events = [
        {"type": "system", "subtype": "init"},
        {"type": "assistant", "message": {"content": [{"type": "text", "text": "dup"}]}},
        {"type": "stream_event", "event": "not-a-mapping"},
        build_text_delta("real"),
        build_result_event("real"),
    ]
    body = await _collect(AgentToChatStreamAdapter("m"), events)
    assert _texts(parse_sse_frames(body)) == ["real"]


@pytest.mark.asyncio
async def test_text_after_thinking_block_is_forwarded():
    events = build_thinking_block("hidden", index=0) + [
        build_block_start(1, "text"),
        build_text_delta("visible", index=1),
        build_block_stop(1),
        build_result_event("visible"),
    ]
    body = await _collect(AgentToChatStreamAdapter("m"), events)
    assert _texts(parse_sse_frames(body)) == ["visible"]


@pytest.mark.asyncio
async def test_reasoning_block_yields_no_frames():
    events = [
        build_block_start(0, "thinking"),
        {
            "type": "stream_event",
            "event": {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "musing"}},
        },
        build_block_stop(0),
        build_text_delta("X", index=1),
        build_result_event("X"),
    ]
    frames = parse_sse_frames(await _collect(AgentToChatStreamAdapter("m"), events))

    chunks = [frame for frame in frames if isinstance(frame, dict)]
    assert len(chunks) == 2
    assert chunks[0]["choices"][0]["delta"] == {"content": "X"}
    assert chunks[1]["choices"][0]["finish_reason"] == "stop"
    assert frames[-1] == "[DONE]"
