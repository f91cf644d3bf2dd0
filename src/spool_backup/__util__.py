# pyright: standard

"""spool-backup: spool_backup/__util__.py
Common utility code shared among modules.
"""

import logging
import shlex
import subprocess
from datetime import datetime

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class AbortError(Exception):
    """Base class for errors that abort the pipeline of a single target."""


def log_heading(caption: str) -> str:
    """Formatted heading for logging output sections."""
    return f"--[ {caption} ]--"


def format_command(cmd: list[str]) -> str:
    """Return a shell-quoted, human readable form of ``cmd``."""
    return " ".join(shlex.quote(str(part)) for part in cmd)


def exec_subprocess(cmd: list[str], **kwargs) -> subprocess.CompletedProcess:
    """Run ``cmd`` and return the completed process without raising on exit status.

    ``FileNotFoundError`` (missing executable) and other ``OSError`` are
    propagated to the caller, which translates them into its own error type.
    """
    logger.debug("Executing: %s", format_command(cmd))
    kwargs.setdefault("check", False)
    return subprocess.run(cmd, **kwargs)  # noqa: PLW1510


def describe_failure(proc: subprocess.CompletedProcess) -> str:
    """Return a one-line description of a failed process."""
    detail = ""
    stderr = getattr(proc, "stderr", None)
    if stderr:
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", "replace")
        lines = stderr.strip().splitlines()
        if lines:
            detail = f": {lines[-1]}"
    return f"exit status {proc.returncode}{detail}"


def format_timestamp(when: datetime | float) -> str:
    """Format a datetime or epoch timestamp in local time."""
    if not isinstance(when, datetime):
        when = datetime.fromtimestamp(when)
    return when.strftime(DATE_FORMAT)


def humanize_age(seconds: float) -> str:
    """Compact age string such as ``3d 4h`` or ``12m``."""
    seconds = max(0, int(seconds))
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes = rem // 60
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
