"""The ``last_run`` marker: the only external signal of a successful run."""

import logging
import os
from datetime import datetime
from pathlib import Path

from .. import __util__, spool
from ..config import TargetConfig
from ..transaction import log_transaction
from .context import RunContext

logger = logging.getLogger(__name__)


class RecorderError(__util__.AbortError):
    """The marker could not be written; the run counts as failed."""


def record_success(
    target: TargetConfig, ctx: RunContext, completed_at: datetime | None = None
) -> Path:
    """Create or touch the marker and set its mtime to the completion time.

    Only call this after transfer and rotation both succeeded. ``ctx.now`` is
    the start of the whole pass; the marker gets ``completed_at`` (default:
    now).
    """
    marker = spool.marker_path(target.spool_dir, target.name)
    completed_at = completed_at or datetime.now()
    if ctx.dry_run:
        logger.info("Would mark %s successful at %s", target.name, completed_at)
        return marker

    stamp = completed_at.timestamp()
    try:
        marker.touch(exist_ok=True)
        os.utime(marker, (stamp, stamp))
    except OSError as e:
        log_transaction(action="record", status="failed", target=target.name, error=str(e))
        raise RecorderError(f"Cannot update {marker}: {e}") from e

    log_transaction(action="record", status="completed", target=target.name)
    logger.debug("Marked %s successful at %s", target.name, __util__.format_timestamp(stamp))
    return marker


def last_success(root: Path | str, name: str) -> datetime | None:
    """Completion time of the last successful run, or None if there was none.

    An unreadable marker counts as no successful run.
    """
    try:
        mtime = spool.marker_path(root, name).stat().st_mtime
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Cannot stat marker of %s: %s", name, e)
        return None
    return datetime.fromtimestamp(mtime)
