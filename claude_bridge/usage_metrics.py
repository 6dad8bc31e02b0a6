"""In-memory usage counters for realtime usage reporting."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any


class RequestTracker:
    """Track a single request lifecycle for in-memory counters."""

    def __init__(self, counters: "UsageCounters") -> None:
        self._counters = counters
        self._finished = False

    def finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._counters.finish_request()


@dataclass
class UsageCounters:
    """Thread-safe counters for request lifecycle, cache and error tracking."""

    _lock: Lock = field(default_factory=Lock, repr=False)
    _started_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    _received: int = 0
    _served: int = 0
    _ongoing: int = 0
    _first_turns: int = 0
    _continued_turns: int = 0
    _cache_hits: int = 0
    _cache_read_tokens: int = 0
    _errors: dict[str, int] = field(default_factory=dict)

    def start_request(self) -> RequestTracker:
        with self._lock:
            self._received += 1
            self._ongoing += 1
        return RequestTracker(self)

    def finish_request(self) -> None:
        with self._lock:
            self._served += 1
            if self._ongoing > 0:
                self._ongoing -= 1
            else:
                self._ongoing = 0

    def record_turn(self, first_turn: bool) -> None:
        with self._lock:
            if first_turn:
                self._first_turns += 1
            else:
                self._continued_turns += 1

    def record_cache_hit(self, tokens: int) -> None:
        if tokens <= 0:
            return
        with self._lock:
            self._cache_hits += 1
            self._cache_read_tokens += tokens

    def record_error(self, code: str) -> None:
        with self._lock:
            self._errors[code] = self._errors.get(code, 0) + 1

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "started_at": self._started_at,
                "received": self._received,
                "served": self._served,
                "ongoing": self._ongoing,
                "first_turns": self._first_turns,
                "continued_turns": self._continued_turns,
                "cache_hits": self._cache_hits,
                "cache_read_tokens": self._cache_read_tokens,
                "errors": dict(self._errors),
            }


def build_usage_snapshot(counters: UsageCounters) -> dict[str, Any]:
    """Build the usage payload with realtime counters."""
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "realtime": counters.snapshot(),
    }
