"""Process entry point for the BTC-e gateway.

``btce-gateway [run|bot] [--config PATH] [--log-dir DIR] [--log-level LEVEL]``
polls the configured exchanges and logs every event until interrupted. Any
other first argument is handed to the typer CLI (``btce-gateway book``).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import load_settings
from .di import build_container
from .logging import configure_logging
from .runtime import run

logger = logging.getLogger(__name__)

GATEWAY_COMMANDS = frozenset({"run", "bot"})
EXIT_CONFIG_ERROR = 2


def gateway_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="btce-gateway run", description="Poll BTC-e and log gateway events")
    parser.add_argument("--config", help="YAML config file (default: BTCE_GATEWAY_CONFIG or ./config.yml)")
    parser.add_argument("--log-dir", type=Path, default=Path("logs"), help="directory for the rotating log file")
    parser.add_argument("--log-level", default=None, help="overrides BTCE_GATEWAY_LOG_LEVEL")
    return parser


def run_gateway(config_path: str | None, log_dir: Path, log_level: str | None = None) -> int:
    """Load settings and run the gateway event loop; returns the process exit code."""
    configure_logging(log_dir, log_level)

    try:
        settings = load_settings(config_path)
    except ValueError as exc:
        logger.error("cannot start gateway: %s", exc)
        return EXIT_CONFIG_ERROR

    logger.info("configured exchanges: %s", ", ".join(sorted(settings.exchanges)) or "none")
    container = build_container(settings)
    try:
        asyncio.run(run(container))
    except KeyboardInterrupt:
        logger.info("interrupted")
    return 0


def _dispatch_cli(argv: list[str]) -> int:
    from .cli import run_cli

    configure_logging(Path("logs"))
    try:
        run_cli(argv)
    except SystemExit as exc:
        return exc.code or 0
    except Exception:
        logger.exception("command %s failed", argv[0])
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)

    if args and args[0] not in GATEWAY_COMMANDS and not args[0].startswith("-"):
        return _dispatch_cli(args)

    if args and args[0] in GATEWAY_COMMANDS:
        args = args[1:]
    options = gateway_arg_parser().parse_args(args)
    return run_gateway(options.config, options.log_dir, options.log_level)


if __name__ == "__main__":
    sys.exit(main())
