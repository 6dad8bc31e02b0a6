"""Stream adapter for converting claude CLI stream-json to OpenAI chat SSE.

CLI events (one JSON object per stdout line, ``--include-partial-messages``):
    {"type":"system","subtype":"init",...}
    {"type":"stream_event","event":{"type":"content_block_start","index":0,"content_block":{"type":"thinking"}}}
    {"type":"stream_event","event":{"type":"content_block_delta","index":0,"delta":{"type":"thinking_delta","thinking":"..."}}}
    {"type":"stream_event","event":{"type":"content_block_stop","index":0}}
    {"type":"stream_event","event":{"type":"content_block_delta","index":1,"delta":{"type":"text_delta","text":"Hello"}}}
    {"type":"result","subtype":"success","is_error":false,"result":"Hello","usage":{...}}

OpenAI Chat Completion Events:
    data: {"object":"chat.completion.chunk","choices":[{"delta":{"content":"Hello"},"index":0}]}
    data: {"object":"chat.completion.chunk","choices":[{"delta":{},"finish_reason":"stop","index":0}]}
    data: [DONE]

Reasoning ("thinking") blocks are never forwarded.
"""

import enum
import logging
import time
from typing import Any, AsyncIterator, Callable, Mapping, Optional

from ..core.sse import SSE_DONE, format_sse_data
from ..types import AgentResult, AgentStreamEvent
from .translator import build_stream_chunk, build_stream_terminal, generate_completion_id

logger = logging.getLogger("claude-bridge")

REASONING_BLOCK_TYPES = frozenset({"thinking", "redacted_thinking"})
REASONING_DELTA_TYPES = frozenset({"thinking_delta", "signature_delta"})


class ReasoningState(enum.Enum):
    """Whether the adapter is inside a reasoning content block."""

    CLOSED = "closed"
    OPEN = "open"


def advance(
    state: ReasoningState, inner: Mapping[str, Any]
) -> tuple[ReasoningState, Optional[str]]:
    """Apply one ``stream_event`` sub-event to the reasoning state machine.

    Returns:
        The next state and the text to forward, or None when the sub-event
        is suppressed or carries no text.
    """
    event_type = inner.get("type")

    if event_type == "content_block_start":
        block = inner.get("content_block") or {}
        if block.get("type") in REASONING_BLOCK_TYPES:
            return ReasoningState.OPEN, None

    if state is ReasoningState.OPEN:
        if event_type == "content_block_stop":
            return ReasoningState.CLOSED, None
        return state, None

    delta = inner.get("delta") or {}
    if not isinstance(delta, Mapping):
        return state, None
    if delta.get("type") in REASONING_DELTA_TYPES:
        return state, None

    text = delta.get("text")
    if isinstance(text, str) and text:
        return state, text
    return state, None


class AgentToChatStreamAdapter:
    """Converts CLI stream-json events to OpenAI chat completion SSE frames.

    The adapter keeps:
    - the reasoning state, threaded through the event loop
    - a stable completion id and creation timestamp for every frame
    - the terminal result event, for the caller to inspect afterwards
    """

    def __init__(
        self,
        model: str,
        completion_id: Optional[str] = None,
        on_finish: Optional[Callable[[Optional[AgentResult]], None]] = None,
    ):
        """Initialize the stream adapter.

        Args:
            model: Model name echoed in every chunk.
            completion_id: Completion id to use, generated if omitted.
            on_finish: Called with the result event (or None when the
                events ran out without one) just before the terminal frame.
        """
        self.model = model
        self.completion_id = completion_id or generate_completion_id()
        self.created = int(time.time())
        self.on_finish = on_finish

        self.result: Optional[AgentResult] = None
        self.saw_result = False
        self.text_chunks = 0
        self.suppressed_events = 0

    def _finish(self) -> None:
        if self.on_finish is not None:
            self.on_finish(self.result)

    def render_delta(self, text: str) -> bytes:
        return format_sse_data(
            build_stream_chunk(self.completion_id, self.created, self.model, text)
        )

    def render_terminal(self, finish_reason: str = "stop") -> bytes:
        """Render the finish chunk followed by the ``[DONE]`` sentinel."""
        terminal = build_stream_terminal(
            self.completion_id, self.created, self.model, finish_reason
        )
        return format_sse_data(terminal) + SSE_DONE

    async def adapt_stream(
        self,
        events: AsyncIterator[AgentStreamEvent],
    ) -> AsyncIterator[bytes]:
        """Transform CLI events into OpenAI chat completion SSE frames.

        Stops consuming at the first ``result`` event. If the events run out
        without one, the terminal frame is still emitted.

        Args:
            events: Parsed CLI stream-json events.

        Yields:
            SSE frames as bytes.
        """
        state = ReasoningState.CLOSED

        async for event in events:
            event_type = event.get("type")

            if event_type == "result":
                self.saw_result = True
                self.result = dict(event)  # type: ignore[assignment]
                finish_reason = "error" if event.get("is_error") else "stop"
                if event.get("is_error"):
                    logger.warning(
                        "Agent reported an error result: %s",
                        str(event.get("result") or "")[:200],
                    )
                self._finish()
                yield self.render_terminal(finish_reason)
                return

            if event_type != "stream_event":
                continue
            inner = event.get("event")
            if not isinstance(inner, Mapping):
                continue

            previous = state
            state, text = advance(state, inner)
            if text is None:
                if previous is ReasoningState.OPEN or state is ReasoningState.OPEN:
                    self.suppressed_events += 1
                continue

            self.text_chunks += 1
            yield self.render_delta(text)

        logger.warning("Agent stream ended without a result event")
        self._finish()
        yield self.render_terminal()
