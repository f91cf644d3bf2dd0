"""Backup orchestration: run the per-target pipeline over all targets.

For each target, in configuration order:

    mount -> transfer -> rotate -> record success -> unmount

Failures are contained to the target they happen in. The ``last_run``
marker is only written when every step before it succeeded.
"""

import contextlib
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from filelock import FileLock, Timeout

from .. import __util__, spool
from ..config import TargetConfig
from ..transaction import TransactionContext
from .context import RunContext
from .mount import MountError, MountGuard
from .recorder import RecorderError, record_success
from .rotation import RotationError, rotate
from .transfer import TransferError, transfer

logger = logging.getLogger(__name__)

SUCCESS = "success"


class LockError(__util__.AbortError):
    """The target lock could not be taken (held by another run, or no spool root)."""


_ERROR_STATUS = (
    (MountError, "mount_error"),
    (TransferError, "transfer_error"),
    (RotationError, "rotation_error"),
    (RecorderError, "recorder_error"),
    (LockError, "lock_error"),
)


@dataclass
class TargetResult:
    """Outcome of one target's pipeline."""

    name: str
    status: str = SUCCESS
    error: str | None = None
    warnings: list[str] = field(default_factory=list)
    rotated: list[str] = field(default_factory=list)
    bytes_transferred: int | None = None
    started_at: datetime = field(default_factory=datetime.now)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS


def status_for(error: BaseException) -> str:
    for error_type, status in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return "error"


def _target_lock(target: TargetConfig, ctx: RunContext):
    if ctx.dry_run:
        return contextlib.nullcontext()
    target.spool_dir.mkdir(parents=True, exist_ok=True)
    return FileLock(spool.lock_path(target.spool_dir, target.name), timeout=ctx.lock_timeout)


def _run_pipeline(target: TargetConfig, ctx: RunContext, result: TargetResult) -> None:
    guard = MountGuard(target, ctx)
    try:
        with guard:
            try:
                lock = _target_lock(target, ctx)
            except OSError as e:
                raise LockError(
                    f"Cannot create spool root {target.spool_dir} for the target lock: {e}"
                ) from e
            try:
                with lock:
                    result.bytes_transferred = transfer(target, ctx)
                    result.rotated = [tier.value for tier in rotate(target, ctx)]
                    record_success(target, ctx)
            except Timeout as e:
                raise LockError(f"Target {target.name} is locked by another run") from e
    finally:
        if guard.unmount_warning is not None:
            result.warnings.append(str(guard.unmount_warning))


def run_target(target: TargetConfig, ctx: RunContext) -> TargetResult:
    """Run the full pipeline for one target and report the outcome.

    Never raises for pipeline failures; the error is stored on the result.
    """
    logger.info(__util__.log_heading(f"Target: {target.name}"))
    result = TargetResult(name=target.name, started_at=datetime.now())
    started = time.monotonic()

    try:
        with TransactionContext(
            "backup", target=target.name, source=target.remote_spec
        ) as tx:
            _run_pipeline(target, ctx, result)
            if result.bytes_transferred is not None:
                tx.set_size(result.bytes_transferred)
            if result.rotated:
                tx.add_detail("rotated", result.rotated)
    except __util__.AbortError as e:
        result.status = status_for(e)
        result.error = str(e)
        logger.error("%s: %s", target.name, e)
    except Exception as e:
        result.status = "error"
        result.error = f"{type(e).__name__}: {e}"
        logger.error(
            "%s: unexpected error: %s",
            target.name,
            result.error,
            exc_info=logger.isEnabledFor(logging.DEBUG),
        )

    result.duration_seconds = time.monotonic() - started
    if result.ok:
        logger.info("%s: backup complete in %.1fs", target.name, result.duration_seconds)
    return result


def run_all(targets: Iterable[TargetConfig], ctx: RunContext) -> list[TargetResult]:
    """Back up each target in order; one target's failure never stops the rest."""
    return [run_target(target, ctx) for target in targets]
