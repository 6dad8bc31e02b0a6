"""Agent backend interface and invocation options."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from ..types import AgentResult, AgentStreamEvent


@dataclass(frozen=True)
class AgentOptions:
    """Options for a single agent invocation.

    Attributes:
        model: CLI model tier ("sonnet", "haiku", "opus").
        system_prompt: System instruction, first turn only.
        session_id: CLI session id; created on the first turn, resumed after.
        continue_session: True to resume ``session_id`` instead of creating it.
        stream: True for stream-json output.
        allowed_tools: Comma-separated tool list passed to ``--allowedTools``.
    """

    model: str
    system_prompt: Optional[str]
    session_id: str
    continue_session: bool
    stream: bool
    allowed_tools: str


class AgentBackend(ABC):
    """Abstract base class for the process that runs the conversation."""

    @abstractmethod
    async def invoke_sync(self, prompt: str, options: AgentOptions) -> AgentResult:
        """Run one exchange and return the final result document.

        Raises:
            AgentTimeoutError: The deadline passed.
            AgentProcessError: The process failed.
            MalformedAgentOutputError: The output was not a JSON document.
        """

    @abstractmethod
    def invoke_stream(
        self, prompt: str, options: AgentOptions
    ) -> AsyncIterator[AgentStreamEvent]:
        """Run one exchange, yielding parsed events as they arrive.

        The iterator is lazy, finite and not restartable.

        Raises:
            AgentProcessError: The process failed (raised from the iterator).
        """
