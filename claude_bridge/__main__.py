"""Run the bridge with uvicorn: ``python -m claude_bridge``."""

import argparse
import dataclasses

import uvicorn

from .config_loader import load_settings
from .main import create_app


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the Claude CLI bridge.")
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--host", help="Bind address (overrides BRIDGE_HOST)")
    parser.add_argument("--port", type=int, help="Bind port (overrides BRIDGE_PORT)")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    settings = load_settings(args.config)
    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
