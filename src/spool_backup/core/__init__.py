"""Core backup operations for spool-backup.

The backup pipeline (mount, transfer, rotation, run recording and the
orchestrator driving them) and the read-only spool health evaluator.
"""

from .context import RunContext
from .health import HealthReport, HealthStatus, TargetHealth, evaluate
from .mount import MountError, MountGuard, UnmountWarning
from .orchestrator import LockError, TargetResult, run_all, run_target
from .recorder import RecorderError, last_success, record_success
from .rotation import RotationError, rotate, should_promote
from .transfer import TransferError, build_rsync_command, transfer

__all__ = [
    "RunContext",
    "MountGuard",
    "MountError",
    "UnmountWarning",
    "transfer",
    "build_rsync_command",
    "TransferError",
    "rotate",
    "should_promote",
    "RotationError",
    "record_success",
    "last_success",
    "RecorderError",
    "run_target",
    "run_all",
    "TargetResult",
    "LockError",
    "evaluate",
    "HealthReport",
    "HealthStatus",
    "TargetHealth",
]
