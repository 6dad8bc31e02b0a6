"""Request-scoped access to the application's orchestrator.

``create_app`` stores the orchestrator on ``app.state``; routes read it from
the request, so every app built by the factory keeps its own sessions and
counters.
"""

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from ..core.orchestrator import BridgeOrchestrator


def get_orchestrator(request: Request) -> "BridgeOrchestrator":
    """Return the orchestrator of the app serving ``request``."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise RuntimeError("Orchestrator not initialized. Was the app built by create_app?")
    return orchestrator
