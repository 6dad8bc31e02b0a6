"""Classification of agent failures into outward HTTP errors."""

from dataclasses import dataclass

from .exceptions import AgentTimeoutError

MAX_DIAGNOSTIC_CHARS = 200

RATE_LIMIT_PHRASES = (
    "rate limit",
    "rate_limit",
    "quota",
    "cooldown",
    "capacity",
    "usage limit",
    "overloaded",
)
AUTH_PHRASES = (
    "not authorized",
    "unauthorized",
    "credential",
    "login",
    "authentication",
    "oauth token",
)
TIMEOUT_PHRASES = ("timed out", "timeout", "etimedout")
SESSION_PHRASES = (
    "session not found",
    "no conversation found",
    "session expired",
    "invalid session",
    "session is corrupted",
    "corrupted session",
)


@dataclass(frozen=True)
class ErrorClassification:
    """Outward form of a failure.

    Attributes:
        status: HTTP status code.
        type: OpenAI-style error type.
        code: Stable short code.
        message: Human-readable message.
        session_expired: True when the conversation's session must be dropped.
    """

    status: int
    type: str
    code: str
    message: str
    session_expired: bool = False

    def to_body(self) -> dict:
        return {"error": {"message": self.message, "type": self.type, "code": self.code}}


def error_body(message: str, error_type: str, code: str) -> dict:
    """Build an OpenAI-style error envelope."""
    return {"error": {"message": message, "type": error_type, "code": code}}


def _contains_any(text: str, phrases: tuple[str, ...]) -> bool:
    return any(phrase in text for phrase in phrases)


def classify_agent_error(exc: BaseException) -> ErrorClassification:
    """Map an agent failure to an outward error.

    Rate limits are surfaced as 429 and never retried here, so a client in
    front of the bridge can fail over to another provider.
    """
    message = (getattr(exc, "message", None) or str(exc) or "Unknown error").strip()
    lowered = message.lower()

    if isinstance(exc, AgentTimeoutError):
        return ErrorClassification(504, "timeout_error", "timeout", "Claude CLI timeout")

    if _contains_any(lowered, RATE_LIMIT_PHRASES):
        return ErrorClassification(
            429, "rate_limit_error", "rate_limit_exceeded", "Claude rate limited"
        )

    if _contains_any(lowered, AUTH_PHRASES):
        return ErrorClassification(
            401,
            "authentication_error",
            "invalid_api_key",
            "Claude auth expired, run: claude login",
        )

    if _contains_any(lowered, TIMEOUT_PHRASES):
        return ErrorClassification(504, "timeout_error", "timeout", "Claude CLI timeout")

    if _contains_any(lowered, SESSION_PHRASES):
        return ErrorClassification(
            502,
            "server_error",
            "session_expired",
            "Claude session expired, retry will create new session",
            session_expired=True,
        )

    return ErrorClassification(
        502,
        "server_error",
        "internal_error",
        f"Claude CLI error: {message[:MAX_DIAGNOSTIC_CHARS]}",
    )
