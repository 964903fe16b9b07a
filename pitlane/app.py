"""Pitlane command line — get your dev environment onto the grid."""

import argparse
import logging
import sys
from datetime import datetime

from .config import Config

logger = logging.getLogger(__name__)


def configure_logging(config: Config) -> None:
    """Send log records to stderr, plus a dated file when LOG_DIR is set."""
    log_level = getattr(logging, config.log_level, logging.WARNING)
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_dir:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        log_file = config.log_dir / f"pitlane-{datetime.now():%Y-%m-%d}.log"
        handlers.append(logging.FileHandler(str(log_file)))

    logging.basicConfig(level=log_level, format=log_format, handlers=handlers)

    # Keep asyncio's own debug chatter out of the wizard output.
    logging.getLogger("asyncio").setLevel(max(log_level, logging.INFO))


# ---------------------------------------------------------------------------
# CLI entrypoint
# ---------------------------------------------------------------------------


class _PitlaneParser(argparse.ArgumentParser):
    """ArgumentParser that shows our help instead of argparse's error message."""

    def error(self, message: str) -> None:
        _print_help()
        sys.exit(2)


def _build_parser() -> argparse.ArgumentParser:
    parser = _PitlaneParser(
        prog="pitlane",
        description="Pitlane — bootstrap a local Stripe + Postgres dev environment",
    )
    cwd_help = "Project directory holding the .env file (defaults to $PWD)"
    parser.add_argument("--cwd", default=None, help=cwd_help)
    sub = parser.add_subparsers(dest="command")

    # pitlane setup (default); SUPPRESS keeps a top-level --cwd from being reset
    setup_parser = sub.add_parser("setup", help="Guided setup wizard (default)")
    setup_parser.add_argument("--cwd", default=argparse.SUPPRESS, help=cwd_help)

    # pitlane check
    sub.add_parser("check", help="Check the Stripe CLI is installed and logged in")

    # pitlane help
    sub.add_parser("help", help="Show this help message")

    return parser


def _print_help() -> None:
    print("""Pitlane — bootstrap a local Stripe + Postgres dev environment

Usage: pitlane [--cwd DIR] <command> [options]

Commands:
  setup            Guided setup wizard (default)
  check            Check the Stripe CLI is installed and logged in
  help             Show this help message

Examples:
  pitlane                                      Run the setup wizard
  pitlane setup --cwd ~/code/my-app            Write .env into another project
  pitlane --cwd ~/code/my-app                  Same, with setup as the default command
  pitlane check                                Verify the Stripe CLI

Run 'pitlane <command> --help' for details on a specific command.""")


def main() -> None:
    """Sync entrypoint for the console script."""
    parser = _build_parser()
    args = parser.parse_args()

    if args.command == "help":
        _print_help()
        return

    try:
        config = Config.from_env()
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    configure_logging(config)

    if args.command == "check":
        from .setup import check_command
        check_command(args, config)
    else:
        # No command or 'setup'
        from .setup import setup_command
        setup_command(args, config)
