"""Usage endpoint for realtime counters."""

from typing import Any

from fastapi import Request

from ...usage_metrics import build_usage_snapshot
from ..dependencies import get_orchestrator


async def get_usage(request: Request) -> dict[str, Any]:
    """GET /usage - realtime request, turn, cache and error counters."""
    return build_usage_snapshot(get_orchestrator(request).usage)
