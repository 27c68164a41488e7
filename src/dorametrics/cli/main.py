"""
dorametrics command-line entry point.
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

import pydantic

from dorametrics import __version__
from dorametrics.cli.report import handle_report_command, register_report_parser
from dorametrics.cli.ux import error
from dorametrics.config import get_settings
from dorametrics.core.errors import ExitCode
from dorametrics.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dorametrics",
        description="DORA delivery-performance metrics",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    register_report_parser(subparsers)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except pydantic.ValidationError as e:
        error(f"Invalid configuration: {e}")
        sys.exit(ExitCode.CONFIG_ERROR)

    configure_logging(settings.log_level)

    if args.command == "report":
        sys.exit(handle_report_command(args))

    parser.print_help()
    sys.exit(ExitCode.SUCCESS)


if __name__ == "__main__":
    main()
