"""In-memory session tracker with TTL-based expiry.

Maps conversation keys to claude CLI session ids so that later messages of
the same conversation resume the same CLI session, which is what lets the
backend reuse its prompt cache. Nothing is persisted: after a restart every
conversation starts a fresh session on its next request.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

logger = logging.getLogger("claude-bridge")

DEFAULT_SESSION_TTL = 30 * 60.0
DEFAULT_SWEEP_INTERVAL = 60.0


@dataclass
class Session:
    """A claude CLI session tied to a conversation.

    Attributes:
        session_id: UUID passed to ``--session-id`` / ``--resume``.
        turn_count: Completed exchanges in this session.
        message_count: Messages the client has sent in this conversation.
        created_at: Clock value at creation.
        last_used_at: Clock value of the last activity.
    """

    session_id: str
    turn_count: int = 0
    message_count: int = 0
    created_at: float = 0.0
    last_used_at: float = 0.0


class SessionTracker:
    """Tracks CLI sessions keyed by conversation key.

    Thread Safety:
    - One lock guards the whole registry; every critical section is a
      plain dict operation with no awaits inside.

    Expiry:
    - ``lookup`` evicts a stale entry on read, so an expired session is
      never returned even if the sweep has not run yet.
    - ``sweep`` runs on its own timer once ``start`` is called and only
      keeps memory bounded.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_SESSION_TTL,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the tracker.

        Args:
            ttl: Seconds of inactivity after which a session expires.
            sweep_interval: Seconds between periodic sweeps.
            clock: Monotonic time source, replaceable in tests.
        """
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._lock = Lock()
        self._sessions: dict[str, Session] = {}
        self._sweep_task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def size(self) -> int:
        """Number of tracked sessions, including expired ones not yet swept."""
        with self._lock:
            return len(self._sessions)

    def _expired(self, session: Session, now: float) -> bool:
        return now - session.last_used_at > self.ttl

    def lookup(self, key: str) -> Optional[Session]:
        """Return the session for ``key`` if present and not expired."""
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                return None
            if self._expired(session, self._clock()):
                del self._sessions[key]
                logger.info(f"[session] expired: {key}")
                return None
            return session

    def create(self, key: str) -> Session:
        """Create a zeroed session with a fresh CLI session id.

        Callers look up first; two concurrent first turns for the same new
        key resolve to last writer wins.
        """
        now = self._clock()
        session = Session(
            session_id=str(uuid.uuid4()),
            created_at=now,
            last_used_at=now,
        )
        with self._lock:
            self._sessions[key] = session
        return session

    def touch(self, key: str) -> None:
        """Record a completed exchange. No-op if the key is unknown."""
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                return
            session.last_used_at = self._clock()
            session.turn_count += 1
            session.message_count += 1

    def delete(self, key: str) -> None:
        """Remove a session so the next request for ``key`` starts fresh."""
        with self._lock:
            self._sessions.pop(key, None)

    def sweep(self) -> int:
        """Remove every session past its TTL.

        Returns:
            The number of sessions removed.
        """
        now = self._clock()
        with self._lock:
            expired = [
                key for key, session in self._sessions.items() if self._expired(session, now)
            ]
            for key in expired:
                del self._sessions[key]
        if expired:
            logger.info("[session] swept %d expired sessions", len(expired))
        return len(expired)

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._stopped or self._sweep_task is not None:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception as exc:
                logger.error(f"[session] sweep failed: {exc}")

    async def shutdown(self) -> None:
        """Stop the periodic sweep. Safe to call more than once."""
        if self._stopped:
            return
        self._stopped = True
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("[session] sweeper stopped")
