"""Snapshot rotation: age tier generations and hard-link clone ``current``.

Generations of a tier are ``<tier>-0`` (newest) to ``<tier>-<depth-1>``.
Promoting a tier discards the oldest generation, shifts the rest up by one
and creates ``<tier>-0`` as a hard-link copy of ``current``. Files are
never copied or modified, only linked and unlinked, so a generation costs
disk space only for files that changed since the previous one.
"""

import calendar
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path

from .. import __util__, spool
from ..config import RetentionConfig, TargetConfig
from ..spool import ROTATION_ORDER, Tier
from ..transaction import log_transaction
from .context import RunContext

logger = logging.getLogger(__name__)


class RotationError(__util__.AbortError):
    """One or more tiers failed to rotate."""

    def __init__(self, message: str, tiers: list[Tier] | None = None) -> None:
        super().__init__(message)
        self.tiers = tiers or []


def should_promote(tier: Tier, retention: RetentionConfig, now: datetime) -> bool:
    """Calendar promotion policy.

    Daily promotes on every run, weekly on ``retention.weekly_day`` and
    monthly on ``retention.monthly_day``. A monthly day past the end of a
    short month falls on that month's last day.
    """
    if tier is Tier.DAILY:
        return True
    if tier is Tier.WEEKLY:
        return now.weekday() == retention.weekly_day
    last_day = calendar.monthrange(now.year, now.month)[1]
    return now.day == min(retention.monthly_day, last_day)


def clone_tree(source: Path, destination: Path) -> None:
    """Recreate ``source`` at ``destination`` with every file hard-linked.

    Symlinks are recreated as symlinks. A partially built destination is
    removed before the error propagates.
    """
    try:
        shutil.copytree(source, destination, symlinks=True, copy_function=os.link)
    except OSError:
        # Best effort: the original error is the one worth reporting
        shutil.rmtree(destination, ignore_errors=True)
        raise


def rotate_tier(
    root: Path, name: str, tier: Tier, depth: int, dry_run: bool = False
) -> None:
    """Age the generations of one tier and create a fresh generation 0.

    Raises:
        OSError: A discard, rename or clone failed
    """
    current = spool.current_dir(root, name)

    for generation in spool.list_generations(root, name, tier):
        if generation >= depth - 1:
            path = spool.generation_dir(root, name, tier, generation)
            if dry_run:
                logger.info("Would discard %s", path)
            else:
                logger.debug("Discarding %s", path)
                shutil.rmtree(path)

    for generation in range(depth - 2, -1, -1):
        src = spool.generation_dir(root, name, tier, generation)
        if not src.is_dir():
            continue
        dst = spool.generation_dir(root, name, tier, generation + 1)
        if dry_run:
            logger.info("Would move %s -> %s", src.name, dst.name)
        else:
            logger.debug("Moving %s -> %s", src.name, dst.name)
            src.rename(dst)

    newest = spool.generation_dir(root, name, tier, 0)
    if dry_run:
        logger.info("Would link %s -> %s", current, newest.name)
        return
    logger.debug("Linking %s -> %s", current, newest)
    clone_tree(current, newest)


def rotate(target: TargetConfig, ctx: RunContext) -> list[Tier]:
    """Rotate every tier of ``target`` that is enabled and due at ``ctx.now``.

    Tiers run coarsest first. A failing tier does not stop the others;
    after all tiers were attempted a RotationError names the failed ones.
    ``current`` and the run marker are never touched.

    Returns:
        The tiers that were promoted
    """
    root, name = target.spool_dir, target.name
    current = spool.current_dir(root, name)
    if not current.is_dir() and not ctx.dry_run:
        raise RotationError(f"Nothing to rotate: {current} does not exist")

    promoted: list[Tier] = []
    failed: list[Tier] = []

    for tier in ROTATION_ORDER:
        depth = target.retention.depth(tier.value)
        if depth <= 0:
            logger.debug("%s: %s tier disabled", name, tier.value)
            continue
        if not should_promote(tier, target.retention, ctx.now):
            logger.debug("%s: %s tier not due", name, tier.value)
            continue

        logger.info("%s: rotating %s tier (keep %d)", name, tier.value, depth)
        try:
            rotate_tier(root, name, tier, depth, dry_run=ctx.dry_run)
        except OSError as e:
            logger.error("%s: %s rotation failed: %s", name, tier.value, e)
            failed.append(tier)
            log_transaction(
                action="rotate",
                status="failed",
                target=name,
                generation=f"{tier.value}-0",
                error=str(e),
            )
            continue

        promoted.append(tier)
        if not ctx.dry_run:
            log_transaction(
                action="rotate",
                status="completed",
                target=name,
                generation=f"{tier.value}-0",
                details={"depth": depth},
            )

    if failed:
        names = ", ".join(t.value for t in failed)
        raise RotationError(f"Rotation failed for tier(s): {names}", failed)

    return promoted
