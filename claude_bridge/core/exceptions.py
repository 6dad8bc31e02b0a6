"""Core exceptions for the bridge."""

from typing import Optional


class BridgeError(Exception):
    """Base exception for bridge errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(BridgeError):
    """Raised when an incoming request is invalid."""

    def __init__(self, message: str, code: str = "invalid_request") -> None:
        super().__init__(message)
        self.code = code


class MissingUserMessageError(InvalidRequestError):
    """Raised when a continuation turn has no user message to send."""

    def __init__(
        self,
        message: str = "No user message found in messages array, cannot continue conversation",
    ) -> None:
        super().__init__(message, code="missing_user_message")


class AgentError(BridgeError):
    """Base exception for failures of the agent process."""
    pass


class AgentTimeoutError(AgentError):
    """Raised when the agent process exceeds its wall-clock deadline."""

    def __init__(self, message: str, timeout: Optional[float] = None) -> None:
        super().__init__(message)
        self.timeout = timeout


class AgentProcessError(AgentError):
    """Raised when the agent process exits unsuccessfully."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class MalformedAgentOutputError(AgentError):
    """Raised when the agent output cannot be parsed as a JSON document."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output
