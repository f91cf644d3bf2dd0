"""Structured transaction logging.

Every pipeline step (mount, transfer, rotate, record) and every target run
can be appended as one JSON object per line to a transaction log. This is
the machine-readable history behind ``spool-backup status -t``.
"""

import json
import logging
import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_transaction_log_path: Path | None = None
_lock = threading.Lock()


def set_transaction_log(path: Path | str | None) -> None:
    """Set (or with None, disable) the transaction log destination.

    Parent directories are created as needed.
    """
    global _transaction_log_path

    if path is None:
        _transaction_log_path = None
        return

    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Cannot create transaction log directory %s: %s", path.parent, e)
    _transaction_log_path = path


def get_transaction_log() -> Path | None:
    return _transaction_log_path


def log_transaction(
    action: str,
    status: str,
    target: str | None = None,
    source: str | None = None,
    destination: str | None = None,
    generation: str | None = None,
    size_bytes: int | None = None,
    duration_seconds: float | None = None,
    error: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Append one transaction record; does nothing when logging is disabled.

    Fields left as None are omitted from the record. Write errors are
    reported as warnings and never raised.
    """
    path = _transaction_log_path
    if path is None:
        return

    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pid": os.getpid(),
        "action": action,
        "status": status,
    }
    optional = {
        "target": target,
        "source": source,
        "destination": destination,
        "generation": generation,
        "size_bytes": size_bytes,
        "duration_seconds": (
            round(duration_seconds, 3) if duration_seconds is not None else None
        ),
        "error": error,
        "details": details,
    }
    record.update({k: v for k, v in optional.items() if v is not None})

    line = json.dumps(record, sort_keys=True) + "\n"
    with _lock:
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.warning("Failed to write transaction log %s: %s", path, e)


class TransactionContext:
    """Log a ``started`` record on entry and ``completed``/``failed`` on exit.

    Exceptions raised inside the block are recorded and re-raised.
    """

    def __init__(self, action: str, **fields: Any) -> None:
        self.action = action
        self.fields = fields
        self.details: dict[str, Any] = {}
        self._start = 0.0

    def __enter__(self) -> "TransactionContext":
        self._start = time.monotonic()
        log_transaction(action=self.action, status="started", **self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        duration = time.monotonic() - self._start
        if exc_type is not None:
            status = "failed"
            error = str(exc_val) or exc_type.__name__
        else:
            status = "completed"
            error = None

        log_transaction(
            action=self.action,
            status=status,
            duration_seconds=duration,
            error=error,
            details=self.details or None,
            **self.fields,
        )
        return False

    def set_size(self, size_bytes: int) -> None:
        self.fields["size_bytes"] = size_bytes

    def add_detail(self, key: str, value: Any) -> None:
        self.details[key] = value


def read_transaction_log(
    path: Path | str | None = None,
    limit: int | None = None,
    action_filter: str | None = None,
    status_filter: str | None = None,
) -> list[dict[str, Any]]:
    """Read transaction records, most recent first.

    Unparseable and empty lines are skipped.
    """
    path = Path(path) if path is not None else _transaction_log_path
    if path is None or not path.exists():
        return []

    records = []
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if action_filter and record.get("action") != action_filter:
                    continue
                if status_filter and record.get("status") != status_filter:
                    continue
                records.append(record)
    except OSError as e:
        logger.warning("Failed to read transaction log %s: %s", path, e)
        return []

    records.reverse()
    if limit is not None:
        records = records[:limit]
    return records


def get_transaction_stats(path: Path | str | None = None) -> dict[str, Any]:
    """Summarize a transaction log into per-action completed/failed counts."""
    records = read_transaction_log(path)

    def counts(*actions: str) -> dict[str, int]:
        return {
            status: sum(
                1
                for r in records
                if r.get("action") in actions and r.get("status") == status
            )
            for status in ("completed", "failed")
        }

    return {
        "total_records": len(records),
        "backups": counts("backup"),
        "transfers": counts("transfer"),
        "rotations": counts("rotate"),
        "mounts": counts("mount", "unmount"),
        "total_bytes_transferred": sum(
            r.get("size_bytes", 0)
            for r in records
            if r.get("action") == "transfer" and r.get("status") == "completed"
        ),
    }
