"""Spool health evaluation for monitoring.

Reads only the ``last_run`` marker of each immediate subdirectory of the
spool root and classifies it by age. Nothing is written and nothing is
locked; a run in progress may briefly show up as stale.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from pathlib import Path

from .. import __util__, spool

logger = logging.getLogger(__name__)

NO_BACKUP = "NO BACKUP"
NO_TARGETS = "No backup targets found."


class HealthStatus(IntEnum):
    """Monitoring states; the value is the plugin exit code."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


@dataclass
class TargetHealth:
    """Classification of one target directory."""

    name: str
    status: HealthStatus
    last_run: datetime | None = None
    age_seconds: float | None = None
    reason: str = ""

    def detail(self) -> str:
        return f"{self.name}: {self.reason}"


@dataclass
class HealthReport:
    """Aggregated verdict over all targets of one spool root."""

    spool_root: Path
    warning_age: float
    critical_age: float
    targets: list[TargetHealth] = field(default_factory=list)
    error: str | None = None

    @property
    def status(self) -> HealthStatus:
        if self.error is not None:
            return HealthStatus.UNKNOWN
        statuses = {t.status for t in self.targets}
        if HealthStatus.CRITICAL in statuses:
            return HealthStatus.CRITICAL
        if HealthStatus.WARNING in statuses:
            return HealthStatus.WARNING
        if not self.targets:
            return HealthStatus.UNKNOWN
        return HealthStatus.OK

    def count(self, status: HealthStatus) -> int:
        return sum(1 for t in self.targets if t.status is status)

    def summary(self) -> str:
        """One-line plugin summary."""
        status = self.status
        if self.error is not None:
            return f"UNKNOWN: {self.error}"
        if not self.targets:
            return f"UNKNOWN: {NO_TARGETS}"
        total = len(self.targets)
        if status is HealthStatus.OK:
            return f"OK: {total} backup target(s) up to date"
        count = self.count(status)
        return f"{status.name}: {count} of {total} backup target(s) {status.name.lower()}"

    def details(self) -> list[str]:
        """Detail lines for the targets at the aggregate (dominant) status."""
        status = self.status
        if status in (HealthStatus.OK, HealthStatus.UNKNOWN):
            return []
        return [t.detail() for t in self.targets if t.status is status]

    def message(self) -> str:
        return "\n".join([self.summary(), *self.details()])


def classify(
    name: str,
    mtime: float | None,
    warning_age: float,
    critical_age: float,
    now: float,
) -> TargetHealth:
    """Classify one target from its marker mtime (None when absent)."""
    if mtime is None:
        return TargetHealth(name, HealthStatus.CRITICAL, reason=NO_BACKUP)

    last_run = datetime.fromtimestamp(mtime)
    age = now - mtime
    stamp = __util__.format_timestamp(last_run)
    if age >= critical_age:
        status = HealthStatus.CRITICAL
    elif age >= warning_age:
        status = HealthStatus.WARNING
    else:
        status = HealthStatus.OK
    return TargetHealth(
        name,
        status,
        last_run=last_run,
        age_seconds=age,
        reason=stamp if status is not HealthStatus.OK else "",
    )


def evaluate(
    spool_root: Path | str,
    warning_age: float,
    critical_age: float,
    now: datetime | float | None = None,
) -> HealthReport:
    """Evaluate every target directory under ``spool_root``.

    Never raises for filesystem problems: an unreadable root yields an
    UNKNOWN report and an unreadable marker counts as no backup.
    """
    root = Path(spool_root)
    if now is None:
        now_ts = datetime.now().timestamp()
    elif isinstance(now, datetime):
        now_ts = now.timestamp()
    else:
        now_ts = float(now)

    report = HealthReport(root, warning_age, critical_age)
    try:
        target_dirs = spool.list_target_dirs(root)
    except OSError as e:
        report.error = f"Cannot read spool directory {root}: {e.strerror or e}"
        return report

    for target_dir in target_dirs:
        try:
            mtime = os.stat(target_dir / spool.MARKER_FILE).st_mtime
        except FileNotFoundError:
            mtime = None
        except OSError as e:
            logger.warning("Cannot stat marker of %s: %s", target_dir.name, e)
            mtime = None
        report.targets.append(
            classify(target_dir.name, mtime, warning_age, critical_age, now_ts)
        )

    return report
