"""Entry point for ``python -m redmine_dashboard``."""

from __future__ import annotations

import argparse
import sys


def main() -> int:
    """Launch the Redmine Dashboard application."""
    parser = argparse.ArgumentParser(
        prog="redmine-dashboard",
        description="Dashboard for Redmine issues and spreadsheet project schedules.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level.",
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Drop the cached issues before starting.",
    )

    args, remaining = parser.parse_known_args()

    from redmine_dashboard.app import run_app

    return run_app([sys.argv[0], *remaining], debug=args.debug, clear_cache=args.clear_cache)


if __name__ == "__main__":
    raise SystemExit(main())
