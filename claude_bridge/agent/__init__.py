"""Agent process adapter.

``AgentBackend`` is the narrow interface the orchestrator depends on;
``ClaudeCLI`` implements it by spawning the claude CLI.
"""

from .base import AgentBackend, AgentOptions
from .cli import ClaudeCLI, build_child_env, build_cli_args

__all__ = [
    "AgentBackend",
    "AgentOptions",
    "ClaudeCLI",
    "build_child_env",
    "build_cli_args",
]
