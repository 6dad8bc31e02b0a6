"""Type definitions for the bridge."""

from .agent import (
    AgentResult,
    AgentStreamEvent,
    AgentUsage,
    ContentBlock,
    EventDelta,
    InnerEvent,
)
from .chat import (
    AssistantMessage,
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    ChunkChoice,
    ContentPart,
    Delta,
    ErrorBody,
    ErrorEnvelope,
    ModelCard,
    ModelList,
    Usage,
)

__all__ = [
    "AgentResult",
    "AgentStreamEvent",
    "AgentUsage",
    "AssistantMessage",
    "ChatCompletionChunk",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessage",
    "Choice",
    "ChunkChoice",
    "ContentBlock",
    "ContentPart",
    "Delta",
    "ErrorBody",
    "ErrorEnvelope",
    "EventDelta",
    "InnerEvent",
    "ModelCard",
    "ModelList",
    "Usage",
]
