"""Configuration loading from YAML files with environment variable support."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import dotenv_values

logger = logging.getLogger("claude-bridge")

# Default path to the config file (relative to project root)
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"

# Environment variable to override the config path
CONFIG_PATH_ENV = "BRIDGE_CONFIG"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3457
DEFAULT_MODEL = "sonnet"
DEFAULT_ALLOWED_TOOLS = "Bash,Read,Write,Edit,Glob,Grep"
DEFAULT_MAX_TURNS = 15
DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_MAX_OUTPUT_BYTES = 50 * 1024 * 1024
DEFAULT_SESSION_TTL_SECONDS = 1800.0
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0
DEFAULT_CLI_PATH = "claude"
DEFAULT_STRIP_ENV = ("CLAUDECODE",)
DEFAULT_LOG_LEVEL = "INFO"

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


@dataclass(frozen=True)
class BridgeSettings:
    """Resolved bridge settings.

    Resolution order for each value: environment variable, then the
    ``bridge_settings`` section of the YAML config, then the built-in default.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    default_model: str = DEFAULT_MODEL
    allowed_tools: str = DEFAULT_ALLOWED_TOOLS
    max_turns: int = DEFAULT_MAX_TURNS
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    session_ttl: float = DEFAULT_SESSION_TTL_SECONDS
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS
    cli_path: str = DEFAULT_CLI_PATH
    strip_env: tuple[str, ...] = field(default=DEFAULT_STRIP_ENV)
    log_level: str = DEFAULT_LOG_LEVEL


def resolve_config_path(path: str) -> Path:
    """Resolve config path relative to project root if needed."""
    if Path(path).is_absolute():
        return Path(path)
    project_root = Path(__file__).parent.parent
    return project_root / path


def resolve_env_path(config_path: Path, env_path: str | None = None) -> Path:
    """Resolve the env file path for a config file."""
    if env_path:
        return resolve_config_path(env_path)
    stem = config_path.stem
    if stem.startswith("config_"):
        suffix = stem[len("config_"):]
        return config_path.with_name(f".env_{suffix}")
    return config_path.with_name(".env")


def load_env_values(env_path: Path) -> dict[str, str]:
    """Load environment values from a .env file without mutating os.environ."""
    if not env_path.exists():
        return {}
    raw_values = dotenv_values(env_path)
    return {key: value for key, value in raw_values.items() if value is not None}


def load_config(
    path: str | None = None,
    env_path: str | None = None,
    substitute_env: bool = True,
) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Path to the config file. Defaults to BRIDGE_CONFIG, or
              configs/config_default.yaml in the project root. A missing
              default file yields an empty config; a missing explicit file
              is an error.
        env_path: Optional .env path override for env substitution.
        substitute_env: Whether to substitute environment variables in the config.

    Returns:
        Parsed configuration dictionary.
    """
    explicit = path is not None or os.getenv(CONFIG_PATH_ENV) is not None
    if path is None:
        path = os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH

    config_path = resolve_config_path(path)

    if not config_path.exists():
        if explicit:
            logger.error(f"Config file not found: {config_path}")
            raise RuntimeError(f"Config file not found: {config_path}")
        logger.info(f"No config file at {config_path}, using defaults")
        return {}

    logger.info(f"Loading configuration from {config_path}")

    env_values: dict[str, str] = {}
    if substitute_env:
        env_file = resolve_env_path(config_path, env_path)
        if env_file.exists():
            logger.info(f"Loading environment variables from {env_file}")
            env_values = load_env_values(env_file)

    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    if substitute_env:
        data = _substitute_env_vars(data, env_values)

    logger.info(f"Configuration loaded successfully from {config_path}")
    return data


def _substitute_env_vars(
    obj: Any, env_values: Mapping[str, str] | None = None
) -> Any:
    """Recursively substitute environment variables in configuration values.

    Supports ``${VAR_NAME}`` and ``$VAR_NAME``. Unset variables are left as
    the literal placeholder and reported.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning(
                    f"CONFIG ERROR: Environment variable '${var_name}' is not set! "
                    f"The literal placeholder will be used."
                )
                return match.group(0)
            return value

        return _ENV_PATTERN.sub(replace_var, obj)
    return obj


def _get_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid integer setting {value!r}, using {default}")
        return default


def _get_float(value: Any, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid numeric setting {value!r}, using {default}")
        return default


def _get_millis(env_value: str | None, fallback_seconds: float) -> float:
    """Convert a millisecond environment value to seconds."""
    if env_value is None or env_value == "":
        return fallback_seconds
    try:
        return int(env_value) / 1000.0
    except ValueError:
        logger.warning(f"Invalid millisecond setting {env_value!r}, using {fallback_seconds}s")
        return fallback_seconds


def _tool_list(value: Any, default: str) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    if value is None:
        return default
    return str(value)


def build_settings(
    config: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> BridgeSettings:
    """Resolve BridgeSettings from a loaded config and the environment.

    Args:
        config: Output of load_config (may be empty).
        environ: Environment mapping; defaults to os.environ.
    """
    config = config or {}
    env = os.environ if environ is None else environ
    section = config.get("bridge_settings") or {}
    if not isinstance(section, Mapping):
        section = {}
    server_cfg = section.get("server") or {}
    if not isinstance(server_cfg, Mapping):
        server_cfg = {}

    host = env.get("BRIDGE_HOST") or str(server_cfg.get("host", DEFAULT_HOST))
    port = _get_int(env.get("BRIDGE_PORT"), _get_int(server_cfg.get("port"), DEFAULT_PORT))
    default_model = env.get("BRIDGE_MODEL") or str(section.get("default_model") or DEFAULT_MODEL)
    allowed_tools = env.get("BRIDGE_TOOLS") or _tool_list(
        section.get("allowed_tools"), DEFAULT_ALLOWED_TOOLS
    )
    max_turns = _get_int(
        env.get("BRIDGE_MAX_TURNS"), _get_int(section.get("max_turns"), DEFAULT_MAX_TURNS)
    )
    timeout = _get_millis(
        env.get("BRIDGE_TIMEOUT_MS"),
        _get_float(section.get("timeout_seconds"), DEFAULT_TIMEOUT_SECONDS),
    )
    session_ttl = _get_millis(
        env.get("BRIDGE_SESSION_TTL_MS"),
        _get_float(section.get("session_ttl_seconds"), DEFAULT_SESSION_TTL_SECONDS),
    )
    cli_path = env.get("BRIDGE_CLI_PATH") or str(section.get("cli_path") or DEFAULT_CLI_PATH)

    strip_env = section.get("strip_env")
    if not isinstance(strip_env, (list, tuple)):
        strip_env = DEFAULT_STRIP_ENV

    return BridgeSettings(
        host=host,
        port=port,
        default_model=default_model,
        allowed_tools=allowed_tools,
        max_turns=max_turns,
        timeout=timeout,
        max_output_bytes=_get_int(section.get("max_output_bytes"), DEFAULT_MAX_OUTPUT_BYTES),
        session_ttl=session_ttl,
        sweep_interval=_get_float(
            section.get("sweep_interval_seconds"), DEFAULT_SWEEP_INTERVAL_SECONDS
        ),
        cli_path=cli_path,
        strip_env=tuple(str(name) for name in strip_env),
        log_level=str(env.get("BRIDGE_LOG_LEVEL") or section.get("log_level") or DEFAULT_LOG_LEVEL),
    )


def load_settings(path: str | None = None) -> BridgeSettings:
    """Load the config file (if any) and resolve settings from it."""
    return build_settings(load_config(path))
