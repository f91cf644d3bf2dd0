"""Status command: Show target status and statistics."""

import argparse
import logging
from datetime import datetime

from rich.console import Console
from rich.table import Table

from .. import __util__, spool
from ..__logger__ import create_logger
from ..config import Config
from ..core.health import HealthStatus, classify
from ..core.recorder import last_success
from ..spool import Tier
from ..transaction import get_transaction_stats, read_transaction_log
from .common import get_log_level, load_cli_config

logger = logging.getLogger(__name__)

_STATUS_STYLE = {
    HealthStatus.OK: "green",
    HealthStatus.WARNING: "yellow",
    HealthStatus.CRITICAL: "red",
    HealthStatus.UNKNOWN: "magenta",
}


def execute_status(args: argparse.Namespace) -> int:
    """Execute the status command.

    Shows the last successful run, its age and retained generations for
    every configured target, judged against the configured thresholds.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    create_logger(level=get_log_level(args))

    config = load_cli_config(args)
    if config is None:
        return 1

    if not config.targets:
        print("No targets configured")
        return 1

    console = Console()
    worst = _print_targets(console, config)

    if getattr(args, "transactions", False):
        _print_transactions(console, getattr(args, "limit", 10))

    return 0 if worst is HealthStatus.OK else 1


def _print_targets(console: Console, config: Config) -> HealthStatus:
    gc = config.global_config
    now = datetime.now().timestamp()

    table = Table(title="spool-backup status")
    table.add_column("Target")
    table.add_column("Enabled")
    table.add_column("Last run")
    table.add_column("Age", justify="right")
    for tier in Tier:
        table.add_column(tier.value.capitalize(), justify="right")
    table.add_column("Status", no_wrap=True)

    worst = HealthStatus.OK
    for target in config.targets:
        last_run = last_success(target.spool_dir, target.name)
        mtime = last_run.timestamp() if last_run is not None else None
        health = classify(target.name, mtime, gc.warning_age, gc.critical_age, now)
        worst = max(worst, health.status)

        generations = [
            f"{len(spool.list_generations(target.spool_dir, target.name, tier))}"
            f"/{target.retention.depth(tier.value)}"
            for tier in Tier
        ]
        style = _STATUS_STYLE[health.status]
        table.add_row(
            target.name,
            "yes" if target.enabled else "no",
            __util__.format_timestamp(mtime) if mtime is not None else "never",
            __util__.humanize_age(health.age_seconds)
            if health.age_seconds is not None
            else "-",
            *generations,
            f"[{style}]{health.status.name}[/{style}]",
        )

    console.print(table)
    return worst


def _print_transactions(console: Console, limit: int) -> None:
    records = read_transaction_log(limit=limit)
    if not records:
        console.print("No transactions recorded")
        return

    table = Table(title=f"Last {len(records)} transaction(s)")
    table.add_column("Time")
    table.add_column("Action")
    table.add_column("Target")
    table.add_column("Status", no_wrap=True)
    table.add_column("Error")
    for record in records:
        table.add_row(
            record.get("timestamp", ""),
            record.get("action", ""),
            record.get("target", ""),
            record.get("status", ""),
            record.get("error", ""),
        )
    console.print(table)

    stats = get_transaction_stats()
    console.print(
        f"Backups: {stats['backups']['completed']} completed, "
        f"{stats['backups']['failed']} failed; "
        f"transferred {stats['total_bytes_transferred']} bytes"
    )
