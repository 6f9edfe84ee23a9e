"""
Command line entry point.

    email-agent-core init [--path PATH]

Writes the placeholder mail config file, or reports that it already exists.
"""

import argparse
import sys
from typing import Optional, Sequence

from email_agent_core import __version__
from email_agent_core.config import settings
from email_agent_core.logging_config import configure_logging
from email_agent_core.mail.config import write_default_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="email-agent-core", description="Email agent toolkit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subcommands = parser.add_subparsers(dest="command")

    init = subcommands.add_parser("init", help="Create the mail config file")
    init.add_argument(
        "--path",
        default=None,
        help=f"Config file to create (default: ./{settings.EMAIL_CONFIG_FILE})",
    )
    return parser


def run_init(path: Optional[str]) -> int:
    dest, created = write_default_config(path)
    if created:
        print(f"Created: {dest}")
    else:
        print(f"Config already exists at: {dest}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "init":
        return run_init(args.path)

    parser.print_usage(sys.stderr)
    print("Unknown command. Usage: email-agent-core init", file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(main())
