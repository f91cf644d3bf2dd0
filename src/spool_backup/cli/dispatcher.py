"""CLI dispatcher.

Builds the subcommand parser and routes to the command handlers, which
live in their own modules and are imported lazily.
"""

import argparse
import sys
from typing import Callable

from .common import add_verbosity_args


def create_subcommand_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="spool-backup",
        description="Back up remote hosts into a local spool with hard-linked snapshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_verbosity_args(parser)

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands (use 'command --help' for details)",
    )

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Back up all configured targets",
        description="Mount, transfer, rotate snapshots and record success for each target",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes",
    )
    run_parser.add_argument(
        "--target",
        metavar="NAME",
        action="append",
        help="Only back up specific target(s)",
    )

    # check command
    check_parser = subparsers.add_parser(
        "check",
        help="Monitoring plugin: check spool freshness",
        description="Report OK/WARNING/CRITICAL/UNKNOWN from last_run marker ages",
    )
    add_check_args(check_parser)

    # status command
    status_parser = subparsers.add_parser(
        "status",
        help="Show target status and statistics",
        description="Display last run times, snapshot counts, and health status",
    )
    status_parser.add_argument(
        "-t",
        "--transactions",
        action="store_true",
        help="Show recent transaction history",
    )
    status_parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=10,
        metavar="N",
        help="Number of transactions to show (default: 10)",
    )

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="Show retained snapshot generations",
        description="List snapshot generations for every configured target",
    )
    list_parser.add_argument(
        "--target",
        metavar="NAME",
        action="append",
        help="Only list specific target(s)",
    )
    list_parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    # config command with subcommands
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Validate or initialize configuration",
    )
    config_subs = config_parser.add_subparsers(dest="config_action")

    config_subs.add_parser(
        "validate",
        help="Validate configuration file",
    )

    init_parser = config_subs.add_parser(
        "init",
        help="Generate example configuration",
    )
    init_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Write to file instead of stdout",
    )

    return parser


def add_check_args(parser: argparse.ArgumentParser) -> None:
    """Arguments of the monitoring check, shared with the standalone plugin."""
    parser.add_argument(
        "--dir",
        required=True,
        metavar="SPOOL_ROOT",
        help="Spool root directory to check",
    )
    parser.add_argument(
        "--warning",
        type=int,
        default=43200,
        metavar="SECONDS",
        help="Age of last successful run that raises WARNING (default: 43200)",
    )
    parser.add_argument(
        "--critical",
        type=int,
        default=86400,
        metavar="SECONDS",
        help="Age of last successful run that is CRITICAL (default: 86400)",
    )


def run_subcommand(args: argparse.Namespace) -> int:
    """Run the specified subcommand.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    from .. import __version__

    if args.version:
        print(f"spool-backup {__version__}")
        return 0

    if not args.command:
        print("No command specified. Use --help for usage information.")
        return 1

    # Route to appropriate command handler
    handlers: dict[str, Callable] = {
        "run": cmd_run,
        "check": cmd_check,
        "status": cmd_status,
        "list": cmd_list,
        "config": cmd_config,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Execute run command."""
    from .run import execute_run

    return execute_run(args)


def cmd_check(args: argparse.Namespace) -> int:
    """Execute check command."""
    from .check import execute_check

    return execute_check(args)


def cmd_status(args: argparse.Namespace) -> int:
    """Execute status command."""
    from .status import execute_status

    return execute_status(args)


def cmd_list(args: argparse.Namespace) -> int:
    """Execute list command."""
    from .list_cmd import execute_list

    return execute_list(args)


def cmd_config(args: argparse.Namespace) -> int:
    """Execute config command."""
    from .config_cmd import execute_config

    return execute_config(args)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for spool-backup CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_subcommand_parser()
    args = parser.parse_args(argv)

    return run_subcommand(args)
