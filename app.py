"""Unified entrypoint for CLI and UI usage."""

from __future__ import annotations

import argparse
import sys

from sprite_mutator.config import load_config
from sprite_mutator.logs import configure_logging
from sprite_mutator.main import main as cli_main
from sprite_mutator.ui.app import create_app


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sprite mutation renderer launcher")
    subparsers = parser.add_subparsers(dest="command")

    ui_parser = subparsers.add_parser("ui", help="Launch the web service")
    ui_parser.add_argument("--host", default="127.0.0.1", help="UI host")
    ui_parser.add_argument("--port", type=int, default=5000, help="UI port")
    ui_parser.add_argument("--config", help="Optional JSON config path")
    ui_parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")

    cli_parser = subparsers.add_parser("cli", help="Run the command line renderer")
    cli_parser.add_argument("cli_args", nargs=argparse.REMAINDER, help="Arguments passed to the CLI")

    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    if args.command in (None, "ui"):
        config = load_config(getattr(args, "config", None))
        configure_logging(config.log_level)
        app = create_app(config)
        app.run(host=getattr(args, "host", "127.0.0.1"), port=getattr(args, "port", 5000), debug=bool(getattr(args, "debug", False)))
        return

    if args.command == "cli":
        argv = [sys.argv[0], *args.cli_args]
        sys.argv = argv
        cli_main()
        return

    raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
