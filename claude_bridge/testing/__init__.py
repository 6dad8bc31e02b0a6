"""Testing utilities for in-process bridge simulations."""

from .event_builders import (
    build_agent_result,
    build_block_start,
    build_block_stop,
    build_result_event,
    build_stream_events,
    build_text_block,
    build_text_delta,
    build_thinking_block,
    build_thinking_delta,
)
from .fake_agent import AgentCall, AgentReply, FakeAgent

__all__ = [
    # Fake backend
    "AgentCall",
    "AgentReply",
    "FakeAgent",
    # Event builders
    "build_agent_result",
    "build_block_start",
    "build_block_stop",
    "build_result_event",
    "build_stream_events",
    "build_text_block",
    "build_text_delta",
    "build_thinking_block",
    "build_thinking_delta",
]
