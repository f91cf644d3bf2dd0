"""Pull a target's remote tree into its spool with rsync over ssh."""

import logging
import re
import time
from pathlib import Path

from .. import __util__, spool
from ..config import TargetConfig
from ..transaction import log_transaction
from .context import RunContext

logger = logging.getLogger(__name__)

RSYNC_BASE_FLAGS = ["-a", "--delete", "--numeric-ids", "--stats"]

_TRANSFERRED_RE = re.compile(r"Total transferred file size:\s*([\d,.]+)")


class TransferError(__util__.AbortError):
    """rsync failed; the target gets no rotation and no marker update."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


def build_ssh_command(target: TargetConfig, ctx: RunContext) -> str:
    """Remote shell string for rsync's ``-e`` option."""
    parts = [ctx.ssh_path, "-p", str(target.ssh_port)]
    if target.ssh_key:
        parts += ["-i", target.ssh_key]
    return __util__.format_command(parts)


def build_rsync_command(
    target: TargetConfig, ctx: RunContext, link_dest: Path | None = None
) -> list[str]:
    """Build the rsync argument list for ``target``.

    The order is fixed so identical inputs always produce identical commands.
    """
    destination = spool.current_dir(target.spool_dir, target.name)

    cmd = [ctx.rsync_path, *RSYNC_BASE_FLAGS]
    if ctx.compress:
        cmd.append("-z")
    cmd += ["-e", build_ssh_command(target, ctx)]
    if target.bwlimit:
        cmd.append(f"--bwlimit={target.bwlimit}")
    cmd += [f"--exclude={pattern}" for pattern in target.excludes]
    if link_dest is not None:
        cmd.append(f"--link-dest={Path(link_dest).resolve()}")
    cmd += list(target.rsync_options)
    if ctx.dry_run:
        cmd.append("--dry-run")
    cmd += [target.remote_spec, f"{destination}/"]
    return cmd


def find_link_dest(target: TargetConfig) -> Path | None:
    """Return the prior ``current`` tree if one exists and is not empty."""
    current = spool.current_dir(target.spool_dir, target.name)
    if current.is_dir() and any(current.iterdir()):
        return current
    return None


def parse_transferred_bytes(output: str | None) -> int | None:
    """Extract "Total transferred file size" from rsync --stats output."""
    if not output:
        return None
    match = _TRANSFERRED_RE.search(output)
    if not match:
        return None
    digits = re.sub(r"[^\d]", "", match.group(1))
    return int(digits) if digits else None


def transfer(target: TargetConfig, ctx: RunContext) -> int | None:
    """Run rsync for ``target`` into ``<spool>/<name>/current``.

    Returns:
        Bytes transferred as reported by rsync, if available

    Raises:
        TransferError: rsync exited nonzero or could not be started
    """
    current = spool.current_dir(target.spool_dir, target.name)
    if not ctx.dry_run:
        try:
            current.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TransferError(f"Cannot create {current}: {e}") from e

    link_dest = find_link_dest(target)
    if link_dest is None:
        logger.info("No previous tree for %s, doing a full transfer", target.name)
    cmd = build_rsync_command(target, ctx, link_dest=link_dest)
    logger.info("Transferring %s -> %s", target.remote_spec, current)
    logger.debug("rsync command: %s", __util__.format_command(cmd))

    started = time.monotonic()
    try:
        proc = __util__.exec_subprocess(cmd, capture_output=True, text=True)
    except OSError as e:
        log_transaction(
            action="transfer",
            status="failed",
            target=target.name,
            source=target.remote_spec,
            error=str(e),
        )
        raise TransferError(f"Cannot run {ctx.rsync_path}: {e}") from e
    duration = time.monotonic() - started

    if proc.returncode != 0:
        reason = __util__.describe_failure(proc)
        log_transaction(
            action="transfer",
            status="failed",
            target=target.name,
            source=target.remote_spec,
            destination=str(current),
            duration_seconds=duration,
            error=reason,
        )
        raise TransferError(
            f"rsync from {target.remote_spec} failed: {reason}", proc.returncode
        )

    size = parse_transferred_bytes(proc.stdout)
    log_transaction(
        action="transfer",
        status="completed",
        target=target.name,
        source=target.remote_spec,
        destination=str(current),
        size_bytes=size,
        duration_seconds=duration,
        details={"link_dest": str(link_dest)} if link_dest else None,
    )
    logger.info("Transfer of %s finished in %.1fs", target.name, duration)
    return size
