"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Generator

import pytest

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings():
    """Default settings, independent of the environment and config files."""
    from claude_bridge.config_loader import build_settings

    return build_settings({}, environ={})


@pytest.fixture
def fake_agent():
    from claude_bridge.testing import FakeAgent

    return FakeAgent(default_text="Hello from the fake agent")


@pytest.fixture
def orchestrator(settings, fake_agent, clock):
    from claude_bridge.core.orchestrator import BridgeOrchestrator
    from claude_bridge.sessions import SessionTracker
    from claude_bridge.usage_metrics import UsageCounters

    sessions = SessionTracker(ttl=settings.session_ttl, clock=clock)
    return BridgeOrchestrator(settings, fake_agent, sessions, UsageCounters())


@pytest.fixture
def app_client(settings, fake_agent) -> Generator[tuple[Any, Any], None, None]:
    """Create a TestClient for an app wired to a FakeAgent.

    Returns:
        Tuple of (FakeAgent, TestClient)

    Usage:
        def test_chat(app_client):
            agent, client = app_client
            agent.enqueue_text("Hello")
            # ... test code ...
    """
    from fastapi.testclient import TestClient

    from claude_bridge.main import create_app

    app = create_app(settings, agent=fake_agent)
    with TestClient(app) as client:
        yield fake_agent, client


def build_chat_request(
    content: str = "Hello",
    *,
    model: str | None = "claude-sonnet",
    system: str | None = None,
    history: list[dict[str, Any]] | None = None,
    stream: bool = False,
) -> dict[str, Any]:
    """Build an OpenAI chat completion request body.

    Args:
        content: Final user message.
        model: Requested model name (omitted when None).
        system: Optional system message placed first.
        history: Messages placed between the system message and ``content``.
        stream: Whether to request streaming.
    """
    messages: list[dict[str, Any]] = []
    if system is not None:
        messages.append({"role": "system", "content": system})
    messages.extend(history or [])
    messages.append({"role": "user", "content": content})
    body: dict[str, Any] = {"messages": messages}
    if model is not None:
        body["model"] = model
    if stream:
        body["stream"] = True
    return body
