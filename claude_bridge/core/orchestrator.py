"""Request orchestration: sessions, translation, agent invocation and rendering.

Per request the orchestrator resolves the conversation key, looks up or
creates the CLI session, translates the messages for a first or a
continuation turn, invokes the agent, classifies failures, and renders the
outbound response either as one JSON body or as a stream of SSE frames.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Optional

from ..agent import AgentBackend, AgentOptions
from ..config_loader import BridgeSettings
from ..sessions import Session, SessionTracker, make_conversation_key
from ..translation import (
    AgentToChatStreamAdapter,
    TranslatedInput,
    map_model_name,
    translate_continue_turn,
    translate_first_turn,
    translate_response,
)
from ..types import AgentResult, AgentStreamEvent
from ..usage_metrics import UsageCounters
from .error_mapping import ErrorClassification, classify_agent_error
from .exceptions import AgentError
from .sse import SSE_DONE, format_sse_error

logger = logging.getLogger("claude-bridge")


@dataclass
class PreparedRequest:
    """Everything needed to run one exchange against the agent."""

    conversation_key: str
    session: Session
    translated: TranslatedInput
    options: AgentOptions
    response_model: str
    created_session: bool


class BridgeOrchestrator:
    """Ties the session tracker, translator and agent together."""

    def __init__(
        self,
        settings: BridgeSettings,
        agent: AgentBackend,
        sessions: SessionTracker,
        usage: Optional[UsageCounters] = None,
    ) -> None:
        self.settings = settings
        self.agent = agent
        self.sessions = sessions
        self.usage = usage or UsageCounters()
        self._drains: set[asyncio.Task] = set()

    def prepare(
        self,
        payload: Mapping[str, Any],
        conversation_id: Optional[str] = None,
        stream: Optional[bool] = None,
    ) -> PreparedRequest:
        """Resolve the session and translate the request.

        A known, unexpired session makes this a continuation turn carrying
        only the newest user message; otherwise a session is created and the
        full context is sent.

        Raises:
            MissingUserMessageError: A continuation turn has no user message.
        """
        messages = payload["messages"]
        requested_model = payload.get("model")
        model = map_model_name(requested_model, self.settings.default_model)
        if isinstance(requested_model, str) and requested_model:
            response_model = requested_model
        else:
            response_model = self.settings.default_model
        if stream is None:
            stream = bool(payload.get("stream"))

        key = make_conversation_key(conversation_id, messages)
        session = self.sessions.lookup(key)
        created = session is None
        if session is None:
            translated = translate_first_turn(messages)
            session = self.sessions.create(key)
            logger.info(f"[session] new: {key} -> claude-session {session.session_id}")
        else:
            translated = translate_continue_turn(messages)
            logger.info(f"[session] continue: {key} (turn {session.turn_count + 1})")
        self.usage.record_turn(created)

        options = AgentOptions(
            model=model,
            system_prompt=translated.system_prompt,
            session_id=session.session_id,
            continue_session=not translated.is_first_turn,
            stream=stream,
            allowed_tools=self.settings.allowed_tools,
        )
        return PreparedRequest(
            conversation_key=key,
            session=session,
            translated=translated,
            options=options,
            response_model=response_model,
            created_session=created,
        )

    def _record_cache(self, result: Optional[Mapping[str, Any]]) -> None:
        usage = (result or {}).get("usage") or {}
        cached = usage.get("cache_read_input_tokens") or 0
        if isinstance(cached, (int, float)) and cached > 0:
            logger.info(f"[cache] hit: {int(cached)} tokens cached")
            self.usage.record_cache_hit(int(cached))

    def _handle_failure(
        self, exc: BaseException, prepared: PreparedRequest
    ) -> ErrorClassification:
        classification = classify_agent_error(exc)
        logger.error(
            "Agent call failed for %s: %s (%s, status %d)",
            prepared.conversation_key,
            exc,
            classification.code,
            classification.status,
        )
        # A session created for a failed first turn may not exist on the
        # CLI side; resuming it later would fail.
        if classification.session_expired or prepared.created_session:
            self.sessions.delete(prepared.conversation_key)
        self.usage.record_error(classification.code)
        return classification

    def _complete_turn(self, prepared: PreparedRequest, result: Optional[AgentResult]) -> None:
        self.sessions.touch(prepared.conversation_key)
        self._record_cache(result)

    async def complete(self, prepared: PreparedRequest) -> tuple[int, dict]:
        """Run a synchronous exchange.

        Returns:
            HTTP status and JSON body; failures are classified, not raised.
        """
        try:
            result = await self.agent.invoke_sync(prepared.translated.prompt, prepared.options)
        except Exception as exc:
            classification = self._handle_failure(exc, prepared)
            return classification.status, classification.to_body()

        self._complete_turn(prepared, result)
        return 200, dict(translate_response(result, prepared.response_model))

    async def stream(self, prepared: PreparedRequest) -> AsyncIterator[bytes]:
        """Run a streaming exchange, yielding SSE frames.

        The output always ends with ``data: [DONE]``: after the terminal
        chunk on success, or after one error frame on failure. The response
        ends right after the terminal chunk; the agent is then reaped by a
        detached task bounded by the configured timeout. If the consumer goes
        away the agent stream is closed, which reaps the child.
        """
        adapter = AgentToChatStreamAdapter(
            prepared.response_model,
            on_finish=lambda result: self._complete_turn(prepared, result),
        )
        events = self.agent.invoke_stream(prepared.translated.prompt, prepared.options)
        frames = adapter.adapt_stream(events)
        detached = False
        try:
            try:
                async for frame in frames:
                    yield frame
            except Exception as exc:
                classification = self._handle_failure(exc, prepared)
                yield format_sse_error(classification.to_body()["error"]) + SSE_DONE
                return

            if adapter.saw_result:
                self._start_drain(events, prepared)
                detached = True
        finally:
            await frames.aclose()
            if not detached:
                await _close_events(events)

    def _start_drain(
        self, events: AsyncIterator[AgentStreamEvent], prepared: PreparedRequest
    ) -> None:
        task = asyncio.ensure_future(self._drain(events, prepared))
        self._drains.add(task)
        task.add_done_callback(self._drains.discard)

    async def _drain(
        self, events: AsyncIterator[AgentStreamEvent], prepared: PreparedRequest
    ) -> None:
        """Let the agent exit on its own after the result event.

        Past ``settings.timeout`` the agent stream is cancelled, which kills
        the child.
        """
        try:
            await asyncio.wait_for(_exhaust(events), timeout=self.settings.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Agent for {prepared.conversation_key} still running "
                f"{self.settings.timeout:g}s after its result; killing it"
            )
        except AgentError as exc:
            logger.warning(
                f"Agent exited with an error after its result for "
                f"{prepared.conversation_key}: {exc}"
            )
        finally:
            await _close_events(events)

    async def shutdown(self) -> None:
        """Cancel agents still being reaped after their result."""
        pending = list(self._drains)
        if not pending:
            return
        logger.info(f"Stopping {len(pending)} agent(s) still running after their result")
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)


async def _exhaust(events: AsyncIterator[AgentStreamEvent]) -> None:
    async for _ in events:
        pass


async def _close_events(events: AsyncIterator[AgentStreamEvent]) -> None:
    aclose = getattr(events, "aclose", None)
    if aclose is not None:
        await aclose()
