"""OpenAI-compatible chat completions endpoint."""

import json
import logging
from typing import Any, Callable, Mapping

from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask, BackgroundTasks

from ...core.exceptions import InvalidRequestError
from ...core.sse import SSE_HEADERS
from ..dependencies import get_orchestrator

logger = logging.getLogger("claude-bridge")

CONVERSATION_ID_HEADER = "x-conversation-id"


def _attach_finish_task(response: Response, finish: Callable[[], None]) -> None:
    existing = getattr(response, "background", None)
    if existing is None:
        response.background = BackgroundTask(finish)
        return

    tasks = BackgroundTasks()
    if isinstance(existing, BackgroundTasks):
        for task in existing.tasks:
            tasks.add_task(task.func, *task.args, **task.kwargs)
    else:
        tasks.add_task(existing.func, *existing.args, **existing.kwargs)
    tasks.add_task(finish)
    response.background = tasks


def parse_chat_payload(body: bytes) -> Mapping[str, Any]:
    """Decode and validate a chat completion request body.

    Raises:
        InvalidRequestError: The body is not JSON, not an object, or has no
            usable messages array.
    """
    try:
        payload = json.loads(body or b"")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.error(f"Invalid JSON payload: {exc}")
        raise InvalidRequestError("Invalid JSON in request body", code="parse_error") from exc

    if not isinstance(payload, Mapping):
        logger.error("Payload must be a JSON object")
        raise InvalidRequestError(
            "Request body must be a JSON object", code="invalid_json_shape"
        )

    messages = payload.get("messages")
    if not isinstance(messages, list) or not messages:
        logger.error("Request missing or invalid messages array")
        raise InvalidRequestError(
            "messages array is required and must not be empty", code="missing_messages"
        )

    if not all(isinstance(message, Mapping) for message in messages):
        logger.error("Request messages array contains non-object entries")
        raise InvalidRequestError(
            "every entry of messages must be an object", code="invalid_messages"
        )

    if any(not isinstance(message.get("role", ""), str) for message in messages):
        logger.error("Request messages array contains a non-string role")
        raise InvalidRequestError("message role must be a string", code="invalid_messages")

    return payload


async def chat_completions(request: Request) -> Response:
    """Chat completions endpoint - OpenAI compatible.

    POST /v1/chat/completions

    Returns:
        A JSONResponse, or a StreamingResponse of SSE frames when the request
        sets ``stream``.
    """
    logger.info("Received chat completions request")
    orchestrator = get_orchestrator(request)
    tracker = orchestrator.usage.start_request()

    try:
        body = await request.body()
        payload = parse_chat_payload(body)
        is_stream = bool(payload.get("stream"))
        prepared = orchestrator.prepare(
            payload,
            conversation_id=request.headers.get(CONVERSATION_ID_HEADER) or None,
            stream=is_stream,
        )
    except InvalidRequestError as exc:
        orchestrator.usage.record_error(exc.code)
        tracker.finish()
        raise
    except Exception:
        tracker.finish()
        raise

    logger.info(
        f"Processing request for model {prepared.options.model}, stream={is_stream}, "
        f"first_turn={prepared.translated.is_first_turn}"
    )

    if is_stream:
        response = StreamingResponse(
            orchestrator.stream(prepared),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )
        _attach_finish_task(response, tracker.finish)
        return response

    try:
        status, result = await orchestrator.complete(prepared)
    finally:
        tracker.finish()
    return JSONResponse(status_code=status, content=result)
