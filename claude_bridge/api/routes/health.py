"""Health check endpoint."""

from fastapi import Request

from ..dependencies import get_orchestrator


async def health(request: Request) -> dict:
    """GET /health

    ``activeSessions`` counts tracked sessions, including expired ones the
    periodic sweep has not removed yet.
    """
    return {
        "status": "ok",
        "activeSessions": get_orchestrator(request).sessions.size,
    }
