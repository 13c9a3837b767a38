"""acctsweep command line interface."""
from __future__ import annotations

import argparse
import getpass
import logging
import os
import pwd
import sys
from pathlib import Path
from typing import NoReturn, Sequence

from . import __version__
from .config import DEFAULT_LOG_FILE, DEFAULT_MIN_UID, DEFAULT_SAFELIST
from .core.planner import PlannerError, RunPlanner
from .types import RunConfig
from .utils.audit import configure_logging
from .utils.reporting import format_json_report, format_text_report

EXIT_USAGE = 1
EXIT_NOT_ROOT = 2
EXIT_RUN_ABORTED = 3


# ═════════════════════════════════════════════════════════════════════════════
# Console output
# ═════════════════════════════════════════════════════════════════════════════

class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"


class Icons:
    """Unicode icons for CLI output."""

    PASS = "✓"
    FAIL = "✗"
    WARNING = "⚠"
    ARROW = "→"


def supports_color() -> bool:
    """Check if terminal supports color output."""
    if os.getenv("NO_COLOR"):
        return False
    if os.getenv("FORCE_COLOR"):
        return True
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


class Console:
    """Plain console output with optional color."""

    def __init__(self, color: bool | None = None):
        self.use_color = color if color is not None else supports_color()

    def _c(self, text: str, color: str) -> str:
        if self.use_color:
            return f"{color}{text}{Colors.RESET}"
        return text

    def success(self, message: str) -> None:
        print(f"  {self._c(Icons.PASS, Colors.GREEN)} {message}")

    def error(self, message: str) -> None:
        print(f"  {self._c(Icons.FAIL, Colors.RED)} {message}")

    def warning(self, message: str) -> None:
        print(f"  {self._c(Icons.WARNING, Colors.YELLOW)} {message}")

    def hint(self, message: str) -> None:
        print(f"  {self._c(Icons.ARROW, Colors.CYAN)} {message}")

    def text(self, message: str) -> None:
        print(message)


# ═════════════════════════════════════════════════════════════════════════════
# Argument parsing
# ═════════════════════════════════════════════════════════════════════════════

class UsageError(Exception):
    """Raised for malformed command line arguments."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def _min_uid(value: str) -> int:
    try:
        uid = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"--min-uid requires an integer, got {value!r}")
    if uid < 0:
        raise argparse.ArgumentTypeError("--min-uid must not be negative")
    return uid


def build_parser() -> argparse.ArgumentParser:
    safelist = ", ".join(DEFAULT_SAFELIST)
    parser = _ArgumentParser(
        prog="acctsweep",
        description="Remove or lock local user accounts, except protected ones.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        epilog=f"""
Never touched: root, the operator running the tool, safelisted accounts
({safelist} plus any --keep), and accounts with
UID below --min-uid unless --force is given. Dry-run unless --execute.

Examples:
  sudo %(prog)s                                  Show what would be done
  sudo %(prog)s --execute                        Delete the listed users
  sudo %(prog)s --execute --archive --remove-home
  sudo %(prog)s --lock-only --execute            Lock instead of deleting
""",
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this help and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Actually perform deletions (default: dry-run)",
    )
    parser.add_argument(
        "--archive",
        action="store_true",
        help="Archive each home directory before deletion",
    )
    parser.add_argument(
        "--remove-home",
        action="store_true",
        help="Remove the home directory on deletion (implies --archive unless --no-archive)",
    )
    parser.add_argument(
        "--no-archive",
        action="store_true",
        help="Don't archive even if --remove-home is given",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Allow UIDs below --min-uid (dangerous)",
    )
    parser.add_argument(
        "--min-uid",
        type=_min_uid,
        default=DEFAULT_MIN_UID,
        metavar="N",
        help=f"Consider users with UID >= N (default {DEFAULT_MIN_UID})",
    )
    parser.add_argument(
        "--lock-only",
        action="store_true",
        help="Lock accounts instead of deleting them (still needs --execute)",
    )
    parser.add_argument(
        "--keep",
        action="append",
        default=[],
        metavar="USER",
        help="Add USER to the safelist (repeatable)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=DEFAULT_LOG_FILE,
        help=f"Append the audit log here (default {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Report output format",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


# ═════════════════════════════════════════════════════════════════════════════
# Host identity
# ═════════════════════════════════════════════════════════════════════════════

def is_privileged() -> bool:
    return os.geteuid() == 0


def resolve_running_user() -> str:
    """Name of the operator: the sudo caller if any, else the effective user."""
    sudo_user = os.environ.get("SUDO_USER", "")
    if sudo_user:
        return sudo_user
    try:
        return pwd.getpwuid(os.geteuid()).pw_name
    except KeyError:
        return getpass.getuser()


# ═════════════════════════════════════════════════════════════════════════════
# Entry point
# ═════════════════════════════════════════════════════════════════════════════

def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    except UsageError as exc:
        parser.print_usage(sys.stderr)
        print(f"acctsweep: error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    if args.help:
        parser.print_help()
        return EXIT_USAGE

    if not is_privileged():
        print("ERROR: must run as root (sudo).", file=sys.stderr)
        return EXIT_NOT_ROOT

    configure_logging(args.log_file, level=logging.DEBUG if args.debug else logging.INFO)
    logger = logging.getLogger(__name__)
    logger.debug("Log file: %s", args.log_file)

    console = Console()
    config = RunConfig.from_args(args)
    planner = RunPlanner(running_user=resolve_running_user())
    try:
        report = planner.run(config)
    except PlannerError as exc:
        logger.error("Run aborted: %s", exc)
        console.error(f"Run aborted: {exc}")
        return EXIT_RUN_ABORTED

    if args.format == "json":
        print(format_json_report(report))
        return report.exit_code

    console.text(format_text_report(report))
    failed = report.failed_accounts()
    if failed:
        console.warning(f"Some steps failed for: {', '.join(failed)} (see {args.log_file})")
    elif report.final_removal_list:
        console.success(f"Run finished. Check {args.log_file} for details.")

    if config.dry_run and report.final_removal_list:
        console.hint(
            "DRY RUN complete. To actually remove the users, re-run with --execute "
            "(and optionally --archive --remove-home)."
        )
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
