"""Seed bot entry point.

Usage:
    seedbot                          Use ./config.json if present, else env
    seedbot --config bot.json        Use a specific config file
    python -m seedbot --verbose      Force debug logging
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from seedbot.bot.orchestrator import BotOrchestrator
from seedbot.config import Settings, load_settings
from seedbot.logging_config import configure_logging, get_logger

DEFAULT_CONFIG_PATH = "config.json"

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="racetime.gg race room bot that rolls randomizer seeds",
        prog="seedbot",
    )
    parser.add_argument(
        "--config",
        "-c",
        help=f"Path to JSON config file (default: {DEFAULT_CONFIG_PATH} if present)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Debug logging regardless of verbose-logging in config",
    )
    return parser


def resolve_config_path(explicit: Optional[str]) -> Optional[Path]:
    """Explicit path as given; otherwise ./config.json only if it exists."""
    if explicit:
        return Path(explicit)
    default = Path(DEFAULT_CONFIG_PATH)
    return default if default.exists() else None


async def run(settings: Settings) -> None:
    """Run the bot until SIGINT/SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: Ctrl+C surfaces as KeyboardInterrupt from asyncio.run
            pass

    orchestrator = BotOrchestrator(settings)
    await orchestrator.run_until(stop_event)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(resolve_config_path(args.config))
    except (OSError, ValueError, ValidationError) as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(
        log_level="DEBUG" if args.verbose else settings.log_level,
        json_logs=settings.log_json,
    )
    logger.info(
        "Starting seed bot",
        game_tag=settings.rtgg_game_tag,
        rtgg_host=settings.rtgg_host,
    )

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
