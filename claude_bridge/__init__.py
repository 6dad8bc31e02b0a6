"""Claude CLI Bridge

An OpenAI-compatible HTTP front end for the ``claude`` command-line agent.

This module provides:
- Translation of chat completion requests into CLI prompts and back
- Conversation to CLI session tracking with idle expiry
- Streaming that forwards visible text and suppresses reasoning blocks
- Classification of CLI failures into OpenAI-style HTTP errors

Example:
    >>> from claude_bridge.main import create_app
    >>> import uvicorn
    >>> uvicorn.run(create_app(), host="127.0.0.1", port=3457)
"""

from .config_loader import BridgeSettings, load_config, load_settings
from .logging import logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    "BridgeSettings",
    "load_config",
    "load_settings",
    "logger",
    "setup_logging",
]
