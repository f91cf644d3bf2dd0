"""Check command: monitoring plugin for spool freshness.

Follows the Nagios plugin conventions: the first stdout line is the
summary, followed by one line per non-OK target, and the exit code is
0 (OK), 1 (WARNING), 2 (CRITICAL) or 3 (UNKNOWN).
"""

import argparse
import sys

from ..__logger__ import create_logger
from ..core.health import HealthStatus, evaluate


def execute_check(args: argparse.Namespace) -> int:
    """Execute the check command.

    Args:
        args: Parsed command line arguments

    Returns:
        Plugin exit code
    """
    # stdout belongs to the plugin output
    create_logger(level="DEBUG" if getattr(args, "debug", False) else "WARNING")

    if args.warning < 0 or args.critical < 0:
        print("UNKNOWN: --warning and --critical must be non-negative")
        return int(HealthStatus.UNKNOWN)

    report = evaluate(args.dir, args.warning, args.critical)
    print(report.message())
    return int(report.status)


class _PluginArgumentParser(argparse.ArgumentParser):
    """Argument errors exit with UNKNOWN instead of argparse's status 2."""

    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"UNKNOWN: {message}")
        sys.exit(int(HealthStatus.UNKNOWN))


def main(argv: list[str] | None = None) -> int:
    """Entry point of the standalone ``check_spool_backup`` plugin."""
    from .dispatcher import add_check_args

    parser = _PluginArgumentParser(
        prog="check_spool_backup",
        description="Check the age of the last successful backup of every spool target",
    )
    add_check_args(parser)
    parser.add_argument("--debug", action="store_true", help=argparse.SUPPRESS)
    args = parser.parse_args(argv)
    return execute_check(args)


if __name__ == "__main__":
    sys.exit(main())
