"""Configuration schema definitions using dataclasses.

Defines the structure for TOML configuration with sensible defaults.
Target records are frozen: they are read once at startup and passed
down the backup pipeline unchanged.
"""

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

DEFAULT_WARNING_AGE = 43200
DEFAULT_CRITICAL_AGE = 86400


@dataclass(frozen=True)
class RetentionConfig:
    """Retention policy configuration.

    Attributes:
        daily: Number of daily generations to keep (0 disables the tier)
        weekly: Number of weekly generations to keep (0 disables the tier)
        monthly: Number of monthly generations to keep (0 disables the tier)
        weekly_day: Weekday that triggers weekly promotion (Monday = 0)
        monthly_day: Day of month that triggers monthly promotion
    """

    daily: int = 0
    weekly: int = 0
    monthly: int = 0
    weekly_day: int = 6
    monthly_day: int = 1

    def depth(self, tier: str) -> int:
        """Retention depth for a tier name ("daily", "weekly" or "monthly")."""
        return getattr(self, tier)


@dataclass(frozen=True)
class MountConfig:
    """Filesystem to mount around a target's run.

    Attributes:
        device: Device or source to mount
        mountpoint: Where the device is mounted
        mount_command: Command used to mount (default: mount DEVICE MOUNTPOINT)
        unmount_command: Command used to unmount (default: umount MOUNTPOINT)
    """

    device: str
    mountpoint: str
    mount_command: Optional[str] = None
    unmount_command: Optional[str] = None

    def get_mount_command(self) -> list[str]:
        if self.mount_command:
            return shlex.split(self.mount_command)
        return ["mount", self.device, self.mountpoint]

    def get_unmount_command(self) -> list[str]:
        if self.unmount_command:
            return shlex.split(self.unmount_command)
        return ["umount", self.mountpoint]


@dataclass(frozen=True)
class TargetConfig:
    """Backup target configuration.

    Attributes:
        name: Unique identifier, also the directory name under the spool root
        host: Remote host to pull from
        remote_path: Path on the remote host
        spool_dir: Local spool root holding this target's directory
        user: Remote user (None lets ssh decide)
        ssh_port: SSH port of the remote host
        ssh_key: Path to SSH private key
        excludes: rsync exclude patterns
        mount: Optional filesystem to mount around the run
        retention: Snapshot retention policy
        rsync_options: Extra arguments appended to the rsync command
        bwlimit: rsync bandwidth limit (e.g. "10M")
        enabled: Whether this target is backed up by ``run``
    """

    name: str
    host: str
    remote_path: str
    spool_dir: Path
    user: Optional[str] = None
    ssh_port: int = 22
    ssh_key: Optional[str] = None
    excludes: tuple[str, ...] = ()
    mount: Optional[MountConfig] = None
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    rsync_options: tuple[str, ...] = ()
    bwlimit: Optional[str] = None
    enabled: bool = True

    @property
    def remote_spec(self) -> str:
        """rsync source specification: [user@]host:path/"""
        prefix = f"{self.user}@{self.host}" if self.user else self.host
        return f"{prefix}:{self.remote_path.rstrip('/')}/"


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        spool_dir: Default spool root for all targets
        excludes: Exclude patterns applied to every target
        retention: Default retention policy
        rsync_path: rsync executable
        ssh_path: ssh executable
        compress: Whether rsync compresses data in transit
        log_file: Path to log file (None for no file logging)
        transaction_log: Path to JSON-lines transaction log (None to disable)
        warning_age: Marker age in seconds that raises a warning
        critical_age: Marker age in seconds that is critical
        lock_timeout: Seconds to wait for a target lock held by another run
    """

    spool_dir: Optional[str] = None
    excludes: list[str] = field(default_factory=list)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    rsync_path: str = "rsync"
    ssh_path: str = "ssh"
    compress: bool = True
    log_file: Optional[str] = None
    transaction_log: Optional[str] = None
    warning_age: int = DEFAULT_WARNING_AGE
    critical_age: int = DEFAULT_CRITICAL_AGE
    lock_timeout: float = 0


@dataclass
class Config:
    """Root configuration object.

    Attributes:
        global_config: Global settings that apply to all targets
        targets: Target configurations in file order
    """

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    targets: list[TargetConfig] = field(default_factory=list)

    def get_enabled_targets(self) -> list[TargetConfig]:
        """Get list of enabled targets."""
        return [t for t in self.targets if t.enabled]

    def get_target(self, name: str) -> Optional[TargetConfig]:
        for target in self.targets:
            if target.name == name:
                return target
        return None

    def spool_roots(self) -> list[Path]:
        """Distinct spool roots in use, in first-seen order."""
        roots: list[Path] = []
        for target in self.targets:
            if target.spool_dir not in roots:
                roots.append(target.spool_dir)
        return roots
