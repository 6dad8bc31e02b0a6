"""Main FastAPI application for the Claude CLI bridge."""

import logging
import socket
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .agent import AgentBackend, ClaudeCLI
from .api.routes import chat_completions, get_usage, health, list_models
from .config_loader import BridgeSettings, load_settings
from .core.error_mapping import error_body
from .core.exceptions import InvalidRequestError
from .core.orchestrator import BridgeOrchestrator
from .logging import setup_logging
from .sessions import SessionTracker
from .usage_metrics import UsageCounters

logger = logging.getLogger("claude-bridge")

CORS_METHODS = ["GET", "POST", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization", "X-Conversation-Id"]


def _log_startup(settings: BridgeSettings) -> None:
    logger.info("Claude CLI bridge starting up...")
    logger.info("Configured bind address %s:%s", settings.host, settings.port)
    if settings.host == "0.0.0.0":
        hostname = socket.gethostname()
        logger.info("Reachable on local network at http://%s:%s", hostname, settings.port)
    logger.info("Default model: %s", settings.default_model)
    logger.info("Allowed tools: %s", settings.allowed_tools or "(none)")
    logger.info("Max turns: %s, timeout: %.0fs", settings.max_turns, settings.timeout)
    logger.info("Session TTL: %.0fs", settings.session_ttl)
    logger.info("Claude CLI bridge ready to handle requests")


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(request: Request, exc: InvalidRequestError):
        return JSONResponse(
            status_code=400,
            content=error_body(exc.message, "invalid_request_error", exc.code),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and wrong methods both answer 404
        if exc.status_code in (404, 405):
            message = f"Not found: {request.method} {request.url.path}"
            return JSONResponse(
                status_code=404,
                content=error_body(message, "invalid_request_error", "not_found"),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), "invalid_request_error", "http_error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error serving {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", "server_error", "internal_error"),
        )


def create_app(
    settings: Optional[BridgeSettings] = None,
    agent: Optional[AgentBackend] = None,
) -> FastAPI:
    """Factory function to create the FastAPI application.

    Args:
        settings: Resolved settings; loaded from config and environment when None.
        agent: Agent backend; a ``ClaudeCLI`` built from ``settings`` when None.

    Returns:
        The configured FastAPI application instance.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    if agent is None:
        agent = ClaudeCLI(
            executable=settings.cli_path,
            max_turns=settings.max_turns,
            timeout=settings.timeout,
            max_output_bytes=settings.max_output_bytes,
            strip_env=settings.strip_env,
        )
    sessions = SessionTracker(ttl=settings.session_ttl, sweep_interval=settings.sweep_interval)
    orchestrator = BridgeOrchestrator(settings, agent, sessions, UsageCounters())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _log_startup(settings)
        sessions.start()
        try:
            yield
        finally:
            logger.info("Claude CLI bridge shutting down, %d sessions tracked", sessions.size)
            await orchestrator.shutdown()
            await sessions.shutdown()

    app = FastAPI(title="Claude CLI Bridge", lifespan=lifespan)
    app.state.settings = settings
    # Routes read the orchestrator from app.state
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )
    _register_exception_handlers(app)

    # Register routes
    app.get("/health")(health)
    app.get("/v1/models")(list_models)
    app.get("/usage")(get_usage)
    app.post("/v1/chat/completions")(chat_completions)

    logger.info("FastAPI application created")
    return app


__all__ = ["create_app"]
