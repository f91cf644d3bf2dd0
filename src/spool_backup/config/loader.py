"""TOML configuration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
"""

import tomllib
from pathlib import Path
from typing import Any

from .schema import (
    DEFAULT_CRITICAL_AGE,
    DEFAULT_WARNING_AGE,
    WEEKDAYS,
    Config,
    GlobalConfig,
    MountConfig,
    RetentionConfig,
    TargetConfig,
)


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "spool-backup" / "config.toml",
    Path("/etc/spool-backup/config.toml"),
]


def find_config_file(explicit_path: str | None = None) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in CONFIG_PATHS:
        if path.exists():
            return path

    return None


def _parse_weekday(value: Any) -> int:
    """Accept a weekday name ("sunday", "sun") or an int with Monday = 0."""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid weekly_day: {value!r}")
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise ConfigError(f"weekly_day must be between 0 and 6, got {value}")
    if isinstance(value, str):
        name = value.strip().lower()
        for index, day in enumerate(WEEKDAYS):
            if name == day or (len(name) >= 3 and day.startswith(name)):
                return index
    raise ConfigError(f"Invalid weekly_day: {value!r}")


def _parse_depth(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"Retention '{key}' must be a non-negative integer")
    return value


def _parse_int(
    data: dict[str, Any],
    key: str,
    default: int,
    minimum: int = 0,
    maximum: int | None = None,
) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if value < minimum or (maximum is not None and value > maximum):
        if maximum is None:
            raise ConfigError(f"'{key}' must be at least {minimum}, got {value}")
        raise ConfigError(
            f"'{key}' must be between {minimum} and {maximum}, got {value}"
        )
    return value


def _parse_seconds(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(
            f"'{key}' must be a non-negative number of seconds, got {value!r}"
        )
    return float(value)


def _parse_strings(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings, got {value!r}")
    return value


def _parse_retention(
    data: dict[str, Any], defaults: RetentionConfig | None = None
) -> RetentionConfig:
    """Parse retention configuration from dict, filling gaps from ``defaults``."""
    defaults = defaults or RetentionConfig()

    monthly_day = data.get("monthly_day", defaults.monthly_day)
    if isinstance(monthly_day, bool) or not isinstance(monthly_day, int):
        raise ConfigError(f"Invalid monthly_day: {monthly_day!r}")
    if not 1 <= monthly_day <= 31:
        raise ConfigError(f"monthly_day must be between 1 and 31, got {monthly_day}")

    return RetentionConfig(
        daily=_parse_depth(data, "daily", defaults.daily),
        weekly=_parse_depth(data, "weekly", defaults.weekly),
        monthly=_parse_depth(data, "monthly", defaults.monthly),
        weekly_day=_parse_weekday(data.get("weekly_day", defaults.weekly_day)),
        monthly_day=monthly_day,
    )


def _parse_mount(data: dict[str, Any], target_name: str) -> MountConfig:
    """Parse mount configuration from dict."""
    for key in ("device", "mountpoint"):
        if not data.get(key):
            raise ConfigError(f"Target '{target_name}' mount missing required '{key}'")

    return MountConfig(
        device=data["device"],
        mountpoint=data["mountpoint"],
        mount_command=data.get("mount_command"),
        unmount_command=data.get("unmount_command"),
    )


def _split_source(source: str) -> tuple[str | None, str, str]:
    """Split ``[user@]host:/path`` into (user, host, path)."""
    if ":" not in source:
        raise ConfigError(f"Invalid source '{source}', expected [user@]host:/path")
    endpoint, path = source.split(":", 1)
    user = None
    if "@" in endpoint:
        user, endpoint = endpoint.rsplit("@", 1)
    if not endpoint or not path:
        raise ConfigError(f"Invalid source '{source}', expected [user@]host:/path")
    return user or None, endpoint, path


def _validate_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ConfigError("Target missing required 'name' field")
    if "/" in name or name in (".", "..") or name.startswith("."):
        raise ConfigError(
            f"Invalid target name '{name}': must be a plain, non-hidden directory name"
        )
    return name


def _parse_target(data: dict[str, Any], global_config: GlobalConfig) -> TargetConfig:
    """Parse target configuration from dict."""
    name = _validate_name(data.get("name"))

    user = data.get("user")
    host = data.get("host")
    remote_path = data.get("remote_path")
    if "source" in data:
        src_user, host, remote_path = _split_source(data["source"])
        user = user or src_user
    if not host or not remote_path:
        raise ConfigError(
            f"Target '{name}' missing remote endpoint ('source' or 'host' + 'remote_path')"
        )

    spool_dir = data.get("spool_dir", global_config.spool_dir)
    if not spool_dir:
        raise ConfigError(
            f"Target '{name}' missing local destination ('spool_dir' or global spool_dir)"
        )

    retention = global_config.retention
    if "retention" in data:
        retention = _parse_retention(data["retention"], global_config.retention)

    mount = None
    if "mount" in data:
        mount = _parse_mount(data["mount"], name)

    return TargetConfig(
        name=name,
        host=host,
        remote_path=remote_path,
        spool_dir=Path(spool_dir),
        user=user,
        ssh_port=_parse_int(data, "ssh_port", 22, minimum=1, maximum=65535),
        ssh_key=data.get("ssh_key"),
        excludes=tuple(global_config.excludes)
        + tuple(_parse_strings(data, "excludes")),
        mount=mount,
        retention=retention,
        rsync_options=tuple(_parse_strings(data, "rsync_options")),
        bwlimit=data.get("bwlimit"),
        enabled=data.get("enabled", True),
    )


def _parse_global(data: dict[str, Any]) -> GlobalConfig:
    """Parse global configuration from dict."""
    retention = RetentionConfig()
    if "retention" in data:
        retention = _parse_retention(data["retention"])

    return GlobalConfig(
        spool_dir=data.get("spool_dir"),
        excludes=list(_parse_strings(data, "excludes")),
        retention=retention,
        rsync_path=data.get("rsync_path", "rsync"),
        ssh_path=data.get("ssh_path", "ssh"),
        compress=data.get("compress", True),
        log_file=data.get("log_file"),
        transaction_log=data.get("transaction_log"),
        warning_age=_parse_int(data, "warning_age", DEFAULT_WARNING_AGE),
        critical_age=_parse_int(data, "critical_age", DEFAULT_CRITICAL_AGE),
        lock_timeout=_parse_seconds(data, "lock_timeout", 0),
    )


def _validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of warnings.

    Duplicate target names are fatal: each name owns one spool directory.
    """
    warnings = []

    if not config.targets:
        warnings.append("No targets configured")

    seen: set[str] = set()
    for target in config.targets:
        if target.name in seen:
            raise ConfigError(f"Duplicate target name '{target.name}'")
        seen.add(target.name)

        retention = target.retention
        if not (retention.daily or retention.weekly or retention.monthly):
            warnings.append(
                f"Target '{target.name}' keeps no snapshots (all retention depths are 0)"
            )

    if config.global_config.warning_age >= config.global_config.critical_age:
        warnings.append("warning_age is not lower than critical_age")

    return warnings


def load_config(path: Path | str) -> tuple[Config, list[str]]:
    """Load and validate configuration from TOML file.

    Args:
        path: Path to configuration file

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    return parse_config(data)


def parse_config(data: dict[str, Any]) -> tuple[Config, list[str]]:
    """Build and validate a Config from already-parsed TOML data."""
    global_config = _parse_global(data.get("global", {}))

    targets = []
    for target_data in data.get("targets", []):
        targets.append(_parse_target(target_data, global_config))

    config = Config(global_config=global_config, targets=targets)

    warnings = _validate_config(config)

    return config, warnings


def generate_example_config() -> str:
    """Generate example configuration file content."""
    return """# spool-backup configuration
# See documentation for full options

[global]
spool_dir = "/srv/backup"
excludes = ["/proc", "/sys", "/dev", "/run", "/tmp"]
# log_file = "/var/log/spool-backup.log"
# transaction_log = "/var/log/spool-backup.jsonl"

# Monitoring thresholds in seconds (used by 'status' and 'check')
warning_age = 43200
critical_age = 86400

[global.retention]
daily = 7               # Keep 7 daily generations (0 = disabled)
weekly = 4              # Keep 4 weekly generations
monthly = 6             # Keep 6 monthly generations
weekly_day = "sunday"   # Day that promotes the weekly tier
monthly_day = 1         # Day of month that promotes the monthly tier

[[targets]]
name = "web1"
source = "root@web1.example.com:/"
excludes = ["/var/cache"]

# Database host with its own retention and a dedicated backup disk
# [[targets]]
# name = "db1"
# host = "db1.example.com"
# user = "backup"
# remote_path = "/var/lib/postgresql"
# ssh_port = 2222
# ssh_key = "/root/.ssh/backup_ed25519"
# spool_dir = "/mnt/backup-disk"
#
# [targets.retention]
# daily = 14
#
# [targets.mount]
# device = "/dev/disk/by-label/backup"
# mountpoint = "/mnt/backup-disk"
"""
