"""Run command: Back up all configured targets."""

import argparse
import logging
import time

from .. import __util__
from ..__logger__ import create_logger
from ..config import Config, TargetConfig
from ..core import RunContext, TargetResult, run_all
from .common import get_log_level, load_cli_config

logger = logging.getLogger(__name__)


def execute_run(args: argparse.Namespace) -> int:
    """Execute the run command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    create_logger(level=get_log_level(args))

    config = load_cli_config(args)
    if config is None:
        return 1

    targets = _select_targets(config, getattr(args, "target", None))
    if targets is None:
        return 1
    if not targets:
        logger.error("No targets configured")
        return 1

    dry_run = getattr(args, "dry_run", False)
    if dry_run:
        _show_plan(config, targets)

    ctx = RunContext.from_global(config.global_config, dry_run=dry_run)

    logger.info(__util__.log_heading(f"Started at {time.ctime()}"))
    logger.info("Processing %d target(s)", len(targets))

    results = run_all(targets, ctx)

    logger.info(__util__.log_heading(f"Finished at {time.ctime()}"))
    _log_summary(results)

    return 0 if all(r.ok for r in results) else 1


def _select_targets(config: Config, names: list[str] | None) -> list[TargetConfig] | None:
    """Enabled targets, or the named ones (even if disabled) in config order."""
    if not names:
        return config.get_enabled_targets()

    unknown = [n for n in names if config.get_target(n) is None]
    if unknown:
        logger.error("Unknown target(s): %s", ", ".join(unknown))
        return None
    return [t for t in config.targets if t.name in names]


def _show_plan(config: Config, targets: list[TargetConfig]) -> None:
    """Show what would be done without making changes."""
    print("Dry run mode - showing what would be done:")
    print("")

    for target in targets:
        print(f"Target: {target.name}")
        print(f"  Source: {target.remote_spec}")
        print(f"  Spool: {target.spool_dir / target.name}")
        if target.excludes:
            print(f"  Excludes: {', '.join(target.excludes)}")
        if target.mount:
            print(f"  Mount: {target.mount.device} -> {target.mount.mountpoint}")

        retention = target.retention
        print(
            f"  Retention: daily={retention.daily}, weekly={retention.weekly}, "
            f"monthly={retention.monthly}"
        )
        print("")


def _log_summary(results: list[TargetResult]) -> None:
    for result in results:
        if result.ok:
            rotated = ", ".join(result.rotated) or "none"
            logger.info(
                "  %s: success (%.1fs, rotated: %s)",
                result.name,
                result.duration_seconds,
                rotated,
            )
        else:
            logger.error("  %s: %s - %s", result.name, result.status, result.error)
        for warning in result.warnings:
            logger.warning("  %s: %s", result.name, warning)

    success_count = sum(1 for r in results if r.ok)
    fail_count = len(results) - success_count

    if fail_count > 0:
        logger.warning(
            "Completed with errors: %d succeeded, %d failed", success_count, fail_count
        )
    else:
        logger.info("All %d target(s) completed successfully", success_count)
