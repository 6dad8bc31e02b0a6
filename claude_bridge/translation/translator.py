"""OpenAI chat <-> claude CLI translation.

This module translates between the OpenAI Chat Completions format and the
prompt/response model of the claude CLI, in both directions.

Key mappings:
- OpenAI system messages -> ``--system-prompt`` (first turn only)
- OpenAI user/assistant history -> one role-labelled prompt on stdin
  (first turn), or only the newest user message (continuation turn, the
  rest already lives in the CLI session)
- CLI json result -> ``chat.completion`` envelope
- CLI text deltas -> ``chat.completion.chunk`` payloads

Reference:
- OpenAI Chat Completions: https://platform.openai.com/docs/api-reference/chat
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from ..core.exceptions import MissingUserMessageError
from ..types import (
    AgentResult,
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChatMessage,
    ModelCard,
)

# Checked in order; the first tier whose name occurs in the request wins.
MODEL_TIERS = ("haiku", "opus", "sonnet")

# Advertised on /v1/models.
MODEL_CARDS = ("claude-sonnet", "claude-haiku", "claude-opus")
MODEL_OWNER = "anthropic"

ROLE_LABELS = {
    "user": "User",
    "assistant": "Assistant",
}


@dataclass(frozen=True)
class TranslatedInput:
    """Result of translating OpenAI messages into CLI input.

    Attributes:
        prompt: Text to send to the CLI via stdin.
        system_prompt: Value for ``--system-prompt``. Always None on a
            continuation turn.
        is_first_turn: Whether this turn creates the CLI session.
    """

    prompt: str
    system_prompt: Optional[str]
    is_first_turn: bool


def generate_completion_id() -> str:
    """Generate a chat completion ID in OpenAI format."""
    return f"chatcmpl-{uuid.uuid4().hex}"


def extract_text(content: Any) -> str:
    """Extract plain text from an OpenAI content field.

    String content is returned unchanged. For array content only parts of
    type "text" are kept and joined with newlines; other parts are dropped.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            part["text"]
            for part in content
            if isinstance(part, Mapping)
            and part.get("type") == "text"
            and isinstance(part.get("text"), str)
        )
    if content is None:
        return ""
    return str(content)


def translate_first_turn(messages: Sequence[ChatMessage]) -> TranslatedInput:
    """Translate OpenAI messages for the first turn of a conversation.

    The full context is sent so the CLI session (and the backend prompt
    cache) starts out with everything the client has seen so far.

    Args:
        messages: Full conversation history from the request.

    Returns:
        TranslatedInput with system messages extracted separately.
    """
    system_texts = [
        extract_text(message.get("content"))
        for message in messages
        if message.get("role") == "system"
    ]
    system_prompt = "\n".join(system_texts) if system_texts else None

    rendered: list[str] = []
    for message in messages:
        role = message.get("role")
        if role == "system":
            continue
        text = extract_text(message.get("content"))
        label = ROLE_LABELS.get(role or "")
        rendered.append(f"{label}: {text}" if label else text)

    return TranslatedInput(
        prompt="\n\n".join(rendered),
        system_prompt=system_prompt,
        is_first_turn=True,
    )


def translate_continue_turn(messages: Sequence[ChatMessage]) -> TranslatedInput:
    """Translate OpenAI messages for a continuation turn.

    Only the last user message is sent; prior context is already held by
    the resumed CLI session.

    Raises:
        MissingUserMessageError: If the array contains no user message.
    """
    for message in reversed(messages):
        if message.get("role") == "user":
            return TranslatedInput(
                prompt=extract_text(message.get("content")),
                system_prompt=None,
                is_first_turn=False,
            )
    raise MissingUserMessageError()


def _usage_value(usage: Mapping[str, Any], key: str) -> int:
    value = usage.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def translate_response(result: AgentResult, model: str) -> ChatCompletionResponse:
    """Translate a CLI json result into an OpenAI chat completion.

    Args:
        result: Parsed document from ``claude -p --output-format json``.
        model: Model name to echo in the response.

    Returns:
        OpenAI-compatible chat completion response.
    """
    usage = result.get("usage") or {}
    prompt_tokens = _usage_value(usage, "input_tokens")
    completion_tokens = _usage_value(usage, "output_tokens")
    content = result.get("result")

    return {
        "id": generate_completion_id(),
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": content if isinstance(content, str) else "",
                },
                "finish_reason": "error" if result.get("is_error") else "stop",
            }
        ],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
            "cache_read_tokens": _usage_value(usage, "cache_read_input_tokens"),
        },
    }


def build_stream_chunk(
    completion_id: str, created: int, model: str, text: str
) -> ChatCompletionChunk:
    """Build one incremental streaming chunk carrying ``text``."""
    return {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": [{"index": 0, "delta": {"content": text}, "finish_reason": None}],
    }


def build_stream_terminal(
    completion_id: str, created: int, model: str, finish_reason: str = "stop"
) -> ChatCompletionChunk:
    """Build the final streaming chunk (empty delta plus finish reason)."""
    return {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": [{"index": 0, "delta": {}, "finish_reason": finish_reason}],
    }


def map_model_name(requested: Optional[str], fallback: str) -> str:
    """Map an OpenAI-style model name onto a CLI model tier.

    Matching is a case-insensitive substring test, so full product
    identifiers such as ``claude-opus-4-1-20250805`` resolve to their tier.

    Args:
        requested: Model name from the request, possibly absent.
        fallback: Tier used when nothing matches.
    """
    if not requested or not isinstance(requested, str):
        return fallback
    normalized = requested.lower()
    for tier in MODEL_TIERS:
        if tier in normalized:
            return tier
    return fallback


def list_model_cards() -> list[ModelCard]:
    """Return the model entries advertised on /v1/models."""
    return [
        {"id": model_id, "object": "model", "owned_by": MODEL_OWNER}
        for model_id in MODEL_CARDS
    ]
