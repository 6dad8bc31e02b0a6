"""Types for the OpenAI-compatible side of the bridge.

This module defines type schemas for the chat completion requests the bridge
accepts and the synchronous and streaming responses it returns. Only the
subset of the OpenAI format the bridge reads or writes is described.
"""

from typing import Any
from typing_extensions import TypedDict


class ContentPart(TypedDict, total=False):
    """A content part for multi-part messages (OpenAI format).

    Only parts of type "text" are honored by the bridge; image and audio
    parts are dropped during translation.

    Attributes:
        type: Type of content part ("text", "image_url", "input_audio", ...).
        text: Text content (for "text" type).
    """
    type: str
    text: str | None


class ChatMessage(TypedDict, total=False):
    """A message in a chat conversation (OpenAI format).

    Attributes:
        role: Role of the message sender ("system", "user" or "assistant").
        content: Either a string or an array of ContentPart.
    """
    role: str
    content: str | list[ContentPart] | None


class ChatCompletionRequest(TypedDict, total=False):
    """The request body of POST /v1/chat/completions.

    Attributes:
        model: Requested model name. Mapped onto a backend tier.
        messages: Ordered conversation history. Required, non-empty.
        stream: Whether to answer with server-sent events.
    """
    model: str
    messages: list[ChatMessage]
    stream: bool


class Usage(TypedDict, total=False):
    """Token usage statistics for a completion.

    Attributes:
        prompt_tokens: Input tokens reported by the backend.
        completion_tokens: Output tokens reported by the backend.
        total_tokens: Sum of prompt and completion tokens.
        cache_read_tokens: Input tokens served from the backend prompt cache.
    """
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    cache_read_tokens: int


class AssistantMessage(TypedDict):
    role: str
    content: str


class Choice(TypedDict):
    """The single choice of a synchronous completion."""
    index: int
    message: AssistantMessage
    finish_reason: str


class ChatCompletionResponse(TypedDict):
    """A synchronous chat completion envelope (object "chat.completion")."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage


class Delta(TypedDict, total=False):
    """Incremental content of a streaming chunk. Empty on the terminal chunk."""
    content: str


class ChunkChoice(TypedDict):
    index: int
    delta: Delta
    finish_reason: str | None


class ChatCompletionChunk(TypedDict):
    """A streaming chunk (object "chat.completion.chunk").

    All chunks of one stream share ``id`` and ``created``.
    """
    id: str
    object: str
    created: int
    model: str
    choices: list[ChunkChoice]


class ErrorBody(TypedDict):
    """The inner object of an error envelope.

    Attributes:
        message: Human-readable description.
        type: Machine-readable class ("invalid_request_error",
            "rate_limit_error", "authentication_error", "timeout_error",
            "server_error").
        code: Stable short code.
    """
    message: str
    type: str
    code: str


class ErrorEnvelope(TypedDict):
    error: ErrorBody


class ModelCard(TypedDict):
    id: str
    object: str
    owned_by: str


class ModelList(TypedDict):
    object: str
    data: list[ModelCard]


JSONDict = dict[str, Any]
