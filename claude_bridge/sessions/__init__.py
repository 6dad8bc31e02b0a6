"""Conversation session tracking.

Usage:
    from claude_bridge.sessions import SessionTracker, make_conversation_key

    tracker = SessionTracker(ttl=1800)
    key = make_conversation_key(request.headers.get("x-conversation-id"), messages)
    session = tracker.lookup(key) or tracker.create(key)
"""

from .keys import make_conversation_key
from .tracker import DEFAULT_SESSION_TTL, DEFAULT_SWEEP_INTERVAL, Session, SessionTracker

__all__ = [
    "DEFAULT_SESSION_TTL",
    "DEFAULT_SWEEP_INTERVAL",
    "Session",
    "SessionTracker",
    "make_conversation_key",
]
