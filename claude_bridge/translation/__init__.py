"""OpenAI chat <-> claude CLI translation helpers.

Provides translation between the OpenAI Chat Completions format and the
claude CLI's prompt, json result and stream-json event formats.
"""

from .stream_adapter import AgentToChatStreamAdapter, ReasoningState, advance
from .translator import (
    TranslatedInput,
    build_stream_chunk,
    build_stream_terminal,
    extract_text,
    generate_completion_id,
    list_model_cards,
    map_model_name,
    translate_continue_turn,
    translate_first_turn,
    translate_response,
)

__all__ = [
    "AgentToChatStreamAdapter",
    "ReasoningState",
    "TranslatedInput",
    "advance",
    "build_stream_chunk",
    "build_stream_terminal",
    "extract_text",
    "generate_completion_id",
    "list_model_cards",
    "map_model_name",
    "translate_continue_turn",
    "translate_first_turn",
    "translate_response",
]
