"""Per-run settings passed explicitly down the backup pipeline."""

from dataclasses import dataclass, field
from datetime import datetime

from ..config import GlobalConfig


@dataclass(frozen=True)
class RunContext:
    """Immutable settings shared by every step of one orchestrator pass.

    Attributes:
        now: Reference time of the run (promotion decisions, marker mtime)
        dry_run: Log commands and planned changes without executing them
        rsync_path: rsync executable
        ssh_path: ssh executable
        compress: Whether rsync compresses data in transit
        lock_timeout: Seconds to wait for a target lock
    """

    now: datetime = field(default_factory=datetime.now)
    dry_run: bool = False
    rsync_path: str = "rsync"
    ssh_path: str = "ssh"
    compress: bool = True
    lock_timeout: float = 0

    @classmethod
    def from_global(
        cls, global_config: GlobalConfig, now: datetime | None = None, dry_run: bool = False
    ) -> "RunContext":
        return cls(
            now=now or datetime.now(),
            dry_run=dry_run,
            rsync_path=global_config.rsync_path,
            ssh_path=global_config.ssh_path,
            compress=global_config.compress,
            lock_timeout=global_config.lock_timeout,
        )
