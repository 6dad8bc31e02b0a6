"""Types for the agent (claude CLI) side of the bridge.

Covers the single JSON document printed with ``--output-format json`` and the
newline-delimited events printed with ``--output-format stream-json``.
"""

from typing_extensions import TypedDict


class AgentUsage(TypedDict, total=False):
    """Token usage reported by the agent.

    Attributes:
        input_tokens: Uncached input tokens.
        output_tokens: Generated tokens.
        cache_read_input_tokens: Input tokens read from the prompt cache.
        cache_creation_input_tokens: Input tokens written to the prompt cache.
    """
    input_tokens: int
    output_tokens: int
    cache_read_input_tokens: int
    cache_creation_input_tokens: int


class AgentResult(TypedDict, total=False):
    """The agent's final result document.

    Printed once in json mode and as the terminal ``"result"`` event in
    stream-json mode.
    """
    type: str
    subtype: str
    is_error: bool
    duration_ms: int
    duration_api_ms: int
    num_turns: int
    result: str
    session_id: str
    total_cost_usd: float
    usage: AgentUsage


class ContentBlock(TypedDict, total=False):
    type: str


class EventDelta(TypedDict, total=False):
    """Delta of a ``content_block_delta`` sub-event.

    ``type`` is "text_delta", "thinking_delta", "signature_delta",
    "input_json_delta", ...
    """
    type: str
    text: str
    thinking: str


class InnerEvent(TypedDict, total=False):
    """A sub-event nested inside a ``stream_event``.

    ``type`` is "message_start", "content_block_start",
    "content_block_delta", "content_block_stop", "message_delta",
    "message_stop", ...
    """
    type: str
    index: int
    content_block: ContentBlock
    delta: EventDelta


class AgentStreamEvent(TypedDict, total=False):
    """One line of stream-json output.

    ``type`` discriminates "stream_event" (carries ``event``), "result"
    (carries the AgentResult fields) and incidental kinds such as "system"
    or "assistant" which the bridge ignores.
    """
    type: str
    event: InnerEvent
    subtype: str
    is_error: bool
    result: str
    session_id: str
    usage: AgentUsage
