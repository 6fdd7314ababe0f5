"""Command-line entry for calendarfilter.

Configuration comes from the environment (CALENDAR_URL, PORT, ...); the
flags below override it for one run.
"""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server
from .exceptions import ConfigurationError


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for calendarfilter CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendarfilter",
        description="Calendar Filter - ICS proxy that removes events in given daily time ranges",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  CALENDAR_URL=https://host/cal.ics python -m calendarfilter
  python -m calendarfilter --port 3000 --source-url https://host/cal.ics

Request examples:
  GET /filter?ranges=09:00-10:00,14:00-15:00&tz=Europe/Paris
  GET /filter?start=09:00&end=10:00&start=14:00&end=15:00
  GET /health
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or from PORT env var)",
    )
    parser.add_argument(
        "--bind",
        metavar="HOST",
        help="Interface to bind (default: 0.0.0.0, or from CALENDARFILTER_BIND env var)",
    )
    parser.add_argument(
        "--source-url",
        dest="source_url",
        metavar="URL",
        help="Upstream ICS feed URL (overrides CALENDAR_URL)",
    )

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Run the calendarfilter CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        run_server(args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)
    except OSError as exc:
        print(f"Failed to start server: {exc}", file=sys.stderr)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
