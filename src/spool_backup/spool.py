"""spool-backup: spool_backup/spool.py
On-disk layout of the spool.

    <spool_root>/<target>/current/          most recent complete tree
    <spool_root>/<target>/<tier>-<n>/       retained generations, 0 = newest
    <spool_root>/<target>/last_run          mtime = last fully successful run

The health check depends on this layout, so names here must not change.
"""

import os
import re
from enum import Enum
from pathlib import Path

CURRENT_DIR = "current"
MARKER_FILE = "last_run"


class Tier(Enum):
    """Snapshot tiers; the value is the directory name prefix."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# Coarsest first: a coarser tier must take its copy of "current" before a
# finer tier's rotation changes anything.
ROTATION_ORDER = (Tier.MONTHLY, Tier.WEEKLY, Tier.DAILY)

_GENERATION_RE = re.compile(r"^(daily|weekly|monthly)-(\d+)$")


def target_dir(root: Path | str, name: str) -> Path:
    return Path(root) / name


def current_dir(root: Path | str, name: str) -> Path:
    return target_dir(root, name) / CURRENT_DIR


def generation_dir(root: Path | str, name: str, tier: Tier, generation: int) -> Path:
    if generation < 0:
        raise ValueError(f"Generation index must be >= 0, got {generation}")
    return target_dir(root, name) / f"{tier.value}-{generation}"


def marker_path(root: Path | str, name: str) -> Path:
    return target_dir(root, name) / MARKER_FILE


def lock_path(root: Path | str, name: str) -> Path:
    """Per-target lock file; a plain file in the root, never a directory."""
    return Path(root) / f".{name}.lock"


def list_target_dirs(root: Path | str) -> list[Path]:
    """Return the immediate child directories of the spool root, sorted by name.

    Only the root itself is read; target directories are never descended
    into, so the cost is proportional to the number of targets.

    Raises:
        OSError: If the root cannot be listed
    """
    with os.scandir(root) as entries:
        dirs = [Path(entry.path) for entry in entries if entry.is_dir()]
    return sorted(dirs, key=lambda p: p.name)


def list_generations(root: Path | str, name: str, tier: Tier) -> list[int]:
    """Return existing generation indices of ``tier`` in ascending order."""
    tdir = target_dir(root, name)
    if not tdir.is_dir():
        return []
    found = []
    with os.scandir(tdir) as entries:
        for entry in entries:
            match = _GENERATION_RE.match(entry.name)
            if match and match.group(1) == tier.value and entry.is_dir():
                found.append(int(match.group(2)))
    return sorted(found)
