"""Scoped mount handling around one target's run.

``MountGuard`` mounts the target's configured filesystem on entry and
unmounts it exactly once on exit, whatever happened inside the block.
"""

import logging
from pathlib import Path

from .. import __util__
from ..config import TargetConfig
from ..transaction import log_transaction
from .context import RunContext

logger = logging.getLogger(__name__)


class MountError(__util__.AbortError):
    """The configured mount command failed; the target is not transferred."""


class UnmountWarning(UserWarning):
    """The unmount command failed after the run; reported, never fatal."""


class MountGuard:
    """Context manager that mounts before and unmounts after a target run.

    With no mount configured both enter and exit are no-ops. An unmount
    failure never replaces the outcome of the guarded block: it is logged
    and kept on ``unmount_warning`` as an ``UnmountWarning``.
    """

    def __init__(self, target: TargetConfig, ctx: RunContext) -> None:
        self.target = target
        self.ctx = ctx
        self.mounted = False
        self.unmount_warning: UnmountWarning | None = None

    def __enter__(self) -> "MountGuard":
        mount = self.target.mount
        if mount is None:
            return self

        cmd = mount.get_mount_command()
        if self.ctx.dry_run:
            logger.info("Would mount: %s", __util__.format_command(cmd))
            self.mounted = True
            return self

        logger.info("Mounting %s on %s", mount.device, mount.mountpoint)
        try:
            Path(mount.mountpoint).mkdir(parents=True, exist_ok=True)
            proc = __util__.exec_subprocess(cmd, capture_output=True, text=True)
        except OSError as e:
            log_transaction(
                action="mount", status="failed", target=self.target.name, error=str(e)
            )
            raise MountError(f"Cannot mount {mount.device}: {e}") from e

        if proc.returncode != 0:
            reason = __util__.describe_failure(proc)
            log_transaction(
                action="mount", status="failed", target=self.target.name, error=reason
            )
            raise MountError(f"Mounting {mount.device} on {mount.mountpoint} failed: {reason}")

        self.mounted = True
        log_transaction(
            action="mount",
            status="completed",
            target=self.target.name,
            destination=mount.mountpoint,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if not self.mounted:
            return False
        self.mounted = False

        mount = self.target.mount
        cmd = mount.get_unmount_command()
        if self.ctx.dry_run:
            logger.info("Would unmount: %s", __util__.format_command(cmd))
            return False

        logger.info("Unmounting %s", mount.mountpoint)
        try:
            proc = __util__.exec_subprocess(cmd, capture_output=True, text=True)
            reason = None if proc.returncode == 0 else __util__.describe_failure(proc)
        except OSError as e:
            reason = str(e)

        if reason is not None:
            message = f"Unmounting {mount.mountpoint} failed: {reason}"
            logger.warning(message)
            self.unmount_warning = UnmountWarning(message)
            log_transaction(
                action="unmount", status="failed", target=self.target.name, error=reason
            )
        else:
            log_transaction(action="unmount", status="completed", target=self.target.name)

        # Never suppress an exception raised inside the block
        return False
