"""
Command line interface for reaper.

Usage:
    reaper /etc/reaper/backups.toml
    reaper /etc/reaper/backups.toml --dry-run -v
    REAPER_CONFIG=/etc/reaper/backups.toml python -m reaper -q
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone

from loguru import logger

from reaper import __version__
from reaper.config import CONFIG_ENV_VAR, load_config
from reaper.errors import ReaperError
from reaper.run import run_retention
from reaper.scan import parse_timestamp

EXIT_OK = 0
EXIT_DELETE_FAILED = 1
EXIT_ERROR = 2


def configure_logging(verbose: int = 0, quiet: bool = False) -> str:
    """
    Route loguru output to stderr at the level picked by the flags.

    Args:
        verbose: Number of -v flags (1 = DEBUG, 2+ = TRACE)
        quiet: Only report errors (ignored when verbose is set)

    Returns:
        The selected level name
    """
    if verbose >= 2:
        level = "TRACE"
    elif verbose == 1:
        level = "DEBUG"
    elif quiet:
        level = "ERROR"
    else:
        level = "INFO"

    logger.remove()
    logger.add(sys.stderr, level=level)
    return level


def _parse_now(value: str) -> datetime:
    now = parse_timestamp(value)
    if now is None:
        raise argparse.ArgumentTypeError(
            f"'{value}' is not an RFC 3339 timestamp with an offset"
        )
    return now


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reaper",
        description="Delete dated backups in a directory according to a tiered retention policy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  Thin a backup directory:
    reaper /etc/reaper/backups.toml

  Show what would be deleted:
    reaper /etc/reaper/backups.toml --dry-run

  Use the config named by ${CONFIG_ENV_VAR}:
    reaper -v
""",
    )
    parser.add_argument(
        "config",
        nargs="?",
        help=f"Path to the TOML config file (default: ${CONFIG_ENV_VAR})",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Log more (-v debug, -vv trace)",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress output except errors",
    )
    parser.add_argument(
        "--dry-run",
        "-d",
        "-n",
        action="store_true",
        help="Report decisions without deleting anything",
    )
    parser.add_argument(
        "--now",
        type=_parse_now,
        metavar="TIMESTAMP",
        help="Reference instant for the decision (default: current time)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Returns:
        Exit code (0 success, 1 a deletion failed, 2 config or scan error)
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    now = args.now or datetime.now(timezone.utc)

    try:
        config = load_config(args.config)
        result = run_retention(config, now, dry_run=args.dry_run)
    except ReaperError as e:
        logger.error(str(e))
        return EXIT_ERROR

    if not result.success:
        logger.error(f"{len(result.errors)} backups could not be deleted")
        return EXIT_DELETE_FAILED

    return EXIT_OK
