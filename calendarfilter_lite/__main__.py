"""Command-line entry for calendarfilter_lite."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn, Optional

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for calendarfilter_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendarfilter",
        description="Serve a keyword/regex filtered subset of an ICS calendar feed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calendarfilter_lite                     # Start server on default port (8080)
  python -m calendarfilter_lite --port 3000         # Start server on port 3000
  python -m calendarfilter_lite --config cf.yaml    # Load settings from a YAML file

Request:
  GET /?targetCalendar=webcal%3A%2F%2Fexample.com%2Ffeed&include=Primary&exclude=Secondary
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or from CALENDARFILTER_WEB_PORT)",
    )
    parser.add_argument(
        "--bind",
        metavar="HOST",
        help="Address to bind (default: 0.0.0.0, or from CALENDARFILTER_WEB_HOST)",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML configuration file (default: ./calendarfilter.yaml if present)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging for calendarfilter_lite modules",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the calendarfilter_lite CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        run_server(args)
    except Exception as exc:
        print(f"calendarfilter failed to start: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
