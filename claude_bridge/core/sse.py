"""SSE (Server-Sent Events) framing for outbound chat completion streams."""

import json
from typing import Any, Mapping


SSE_DONE = b"data: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse_data(payload: Mapping[str, Any]) -> bytes:
    """Frame one JSON payload as a self-contained SSE data event."""
    data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return f"data: {data}\n\n".encode("utf-8")


def format_sse_error(error: Mapping[str, Any]) -> bytes:
    """Frame an error envelope for delivery inside an already-open stream."""
    return format_sse_data({"error": dict(error)})


def parse_sse_frames(data: bytes | str) -> list[Any]:
    """
    Split a buffered SSE body back into payloads.

    JSON frames are decoded; the ``[DONE]`` sentinel is returned as the
    literal string ``"[DONE]"``. Lines that are not ``data:`` lines are
    ignored.
    """
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    frames: list[Any] = []
    for line in text.split("\n"):
        line = line.strip()
        if not line.startswith("data:"):
            continue
        json_part = line[5:].strip()
        if json_part == "[DONE]":
            frames.append(json_part)
            continue
        try:
            frames.append(json.loads(json_part))
        except json.JSONDecodeError:
            continue
    return frames
