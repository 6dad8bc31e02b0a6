"""API module for the bridge."""

from .routes import chat_completions, get_usage, health, list_models, parse_chat_payload

__all__ = [
    "chat_completions",
    "get_usage",
    "health",
    "list_models",
    "parse_chat_payload",
]
