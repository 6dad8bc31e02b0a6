"""API routes for the bridge."""

from .chat import chat_completions, parse_chat_payload
from .health import health
from .models import list_models
from .usage import get_usage

__all__ = [
    "chat_completions",
    "get_usage",
    "health",
    "list_models",
    "parse_chat_payload",
]
