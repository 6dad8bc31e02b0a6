"""Core module initialization."""

from .error_mapping import ErrorClassification, classify_agent_error, error_body
from .exceptions import (
    AgentError,
    AgentProcessError,
    AgentTimeoutError,
    BridgeError,
    InvalidRequestError,
    MalformedAgentOutputError,
    MissingUserMessageError,
)
from .sse import SSE_DONE, SSE_HEADERS, format_sse_data, format_sse_error, parse_sse_frames

__all__ = [
    "AgentError",
    "AgentProcessError",
    "AgentTimeoutError",
    "BridgeError",
    "ErrorClassification",
    "InvalidRequestError",
    "MalformedAgentOutputError",
    "MissingUserMessageError",
    "SSE_DONE",
    "SSE_HEADERS",
    "classify_agent_error",
    "error_body",
    "format_sse_data",
    "format_sse_error",
    "parse_sse_frames",
]
