"""frontdoor CLI dispatcher.

Commands:
  bootstrap  Show the gateway's frontdoor capabilities
  validate   Validate a runtime profile file
  suggest    Ask the gateway to draft a profile from an intent
  launch     Connect, authenticate, launch and follow provisioning
  status     Inspect or watch a launch session
"""

from __future__ import annotations

import argparse
import sys
import textwrap
from importlib.metadata import PackageNotFoundError, version as pkg_version
from typing import Callable, List

from .bootstrap import cmd_bootstrap
from .common import LOG_LEVELS, configure_logging
from .launch import cmd_launch
from .status import cmd_status
from .suggest import cmd_suggest
from .validate import cmd_validate

CommandHandler = Callable[[List[str]], int]


def cmd_version(argv: List[str]) -> int:
    """Show version information."""
    print(f"frontdoor version {_resolve_version()}")
    return 0


def _resolve_version() -> str:
    try:
        return pkg_version("frontdoor")
    except PackageNotFoundError:
        return "unknown"


COMMANDS: dict[str, CommandHandler] = {
    "bootstrap": cmd_bootstrap,
    "validate": cmd_validate,
    "suggest": cmd_suggest,
    "launch": cmd_launch,
    "status": cmd_status,
    "version": cmd_version,
}


def _build_top_help_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="frontdoor",
        description="frontdoor identity and launch client",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.description = textwrap.dedent("""
        Available commands:
          bootstrap  Show the gateway's frontdoor capabilities
          validate   Validate a runtime profile file
          suggest    Ask the gateway to draft a profile from an intent
          launch     Connect, authenticate, launch and follow provisioning
          status     Inspect or watch a launch session

        Global options:
          --log-level LEVEL  One of DEBUG, INFO, WARNING, ERROR
    """)
    parser.add_argument("command", nargs="?", help="Command to run")
    return parser


def _extract_log_level(argv: List[str]) -> tuple[List[str], str | None]:
    """Extract --log-level from argv; return (rest, level)."""
    rest: List[str] = []
    level: str | None = None
    i = 0
    while i < len(argv):
        tok = argv[i]
        if tok.startswith("--log-level="):
            level = tok.split("=", 1)[1]
            i += 1
            continue
        if tok == "--log-level":
            if i + 1 < len(argv):
                level = argv[i + 1]
                i += 2
                continue
            i += 1
            continue
        rest.append(tok)
        i += 1
    return rest, level


def main(argv: List[str] | None = None) -> int:
    """Main CLI entry point."""
    argv = list(argv) if argv is not None else sys.argv[1:]
    argv, level = _extract_log_level(argv)
    if level is not None and level.upper() not in LOG_LEVELS:
        print(f"Error: invalid log level '{level}'", file=sys.stderr)
        return 2
    configure_logging(level)

    if not argv or argv[0] in {"-h", "--help"}:
        _build_top_help_parser().print_help()
        return 0

    cmd, rest = argv[0], argv[1:]
    handler = COMMANDS.get(cmd)
    if handler is None:
        print(f"Error: Unknown command '{cmd}'", file=sys.stderr)
        print("Run 'frontdoor --help' for available commands.", file=sys.stderr)
        return 2
    return _dispatch_command(handler, rest)


def _dispatch_command(handler: CommandHandler, rest: List[str]) -> int:
    try:
        return handler(rest)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except (OSError, TypeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
