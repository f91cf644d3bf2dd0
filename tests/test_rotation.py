"""Tests for snapshot rotation."""

import os
from dataclasses import replace
from datetime import datetime

import pytest

from spool_backup import spool
from spool_backup.config import RetentionConfig
from spool_backup.core import rotation
from spool_backup.core.rotation import (
    RotationError,
    clone_tree,
    rotate,
    rotate_tier,
    should_promote,
)
from spool_backup.spool import Tier

WEDNESDAY = datetime(2024, 3, 13, 2, 0)
SUNDAY = datetime(2024, 3, 17, 2, 0)
FIRST_OF_MONTH = datetime(2024, 3, 1, 2, 0)


def _populate_current(root, name="web1", content="v1"):
    current = spool.current_dir(root, name)
    current.mkdir(parents=True, exist_ok=True)
    index = current / "index.html"
    if index.exists():
        index.unlink()
    index.write_text(content)
    return current


def _ino(path):
    return os.stat(path).st_ino


class TestShouldPromote:
    """Tests for the calendar promotion policy."""

    def test_daily_always(self):
        assert should_promote(Tier.DAILY, RetentionConfig(), WEDNESDAY)

    def test_weekly_on_weekly_day(self):
        retention = RetentionConfig(weekly_day=6)
        assert should_promote(Tier.WEEKLY, retention, SUNDAY)
        assert not should_promote(Tier.WEEKLY, retention, WEDNESDAY)

    def test_monthly_on_monthly_day(self):
        retention = RetentionConfig(monthly_day=1)
        assert should_promote(Tier.MONTHLY, retention, FIRST_OF_MONTH)
        assert not should_promote(Tier.MONTHLY, retention, WEDNESDAY)

    def test_monthly_day_clamped_to_month_end(self):
        retention = RetentionConfig(monthly_day=31)
        assert should_promote(Tier.MONTHLY, retention, datetime(2024, 2, 29))
        assert not should_promote(Tier.MONTHLY, retention, datetime(2024, 2, 28))
        assert should_promote(Tier.MONTHLY, retention, datetime(2024, 3, 31))


class TestCloneTree:
    """Tests for hard-link cloning."""

    def test_files_are_hard_linked(self, tmp_path):
        src = tmp_path / "src"
        (src / "sub").mkdir(parents=True)
        (src / "a.txt").write_text("a")
        (src / "sub" / "b.txt").write_text("b")
        os.symlink("a.txt", src / "link")

        clone_tree(src, tmp_path / "dst")

        assert _ino(tmp_path / "dst" / "a.txt") == _ino(src / "a.txt")
        assert _ino(tmp_path / "dst" / "sub" / "b.txt") == _ino(src / "sub" / "b.txt")
        assert os.readlink(tmp_path / "dst" / "link") == "a.txt"

    def test_existing_destination_fails(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (tmp_path / "dst").mkdir()

        with pytest.raises(OSError):
            clone_tree(src, tmp_path / "dst")


class TestRotateTier:
    """Tests for aging a single tier."""

    def test_three_runs_with_depth_three(self, spool_root):
        inodes = []
        for run in range(3):
            current = _populate_current(spool_root, content=f"v{run}")
            inodes.append(_ino(current / "index.html"))
            rotate_tier(spool_root, "web1", Tier.DAILY, 3)

        tdir = spool_root / "web1"
        assert spool.list_generations(spool_root, "web1", Tier.DAILY) == [0, 1, 2]
        # Newest generation shares storage with current, older ones keep theirs
        assert _ino(tdir / "daily-0" / "index.html") == inodes[2]
        assert _ino(tdir / "daily-1" / "index.html") == inodes[1]
        assert _ino(tdir / "daily-2" / "index.html") == inodes[0]
        assert (tdir / "daily-2" / "index.html").read_text() == "v0"
        assert (tdir / "current" / "index.html").read_text() == "v2"

    def test_depth_is_an_upper_bound(self, spool_root):
        for run in range(6):
            _populate_current(spool_root, content=f"v{run}")
            rotate_tier(spool_root, "web1", Tier.DAILY, 3)

        assert spool.list_generations(spool_root, "web1", Tier.DAILY) == [0, 1, 2]
        assert (spool_root / "web1" / "daily-2" / "index.html").read_text() == "v3"

    def test_depth_reduced_discards_excess(self, spool_root):
        _populate_current(spool_root)
        for index in range(5):
            (spool_root / "web1" / f"daily-{index}").mkdir()

        rotate_tier(spool_root, "web1", Tier.DAILY, 2)

        assert spool.list_generations(spool_root, "web1", Tier.DAILY) == [0, 1]

    def test_dry_run_changes_nothing(self, spool_root):
        _populate_current(spool_root)
        (spool_root / "web1" / "daily-0").mkdir()

        rotate_tier(spool_root, "web1", Tier.DAILY, 1, dry_run=True)

        assert spool.list_generations(spool_root, "web1", Tier.DAILY) == [0]
        assert not any((spool_root / "web1" / "daily-0").iterdir())


class TestRotate:
    """Tests for rotating all tiers of a target."""

    def test_missing_current_fails(self, make_target, ctx):
        with pytest.raises(RotationError, match="Nothing to rotate"):
            rotate(make_target(), ctx)

    def test_only_due_tiers_rotate(self, make_target, ctx, spool_root):
        _populate_current(spool_root)
        target = make_target(daily=3, weekly=2, monthly=2)

        promoted = rotate(target, ctx)

        assert promoted == [Tier.DAILY]
        assert spool.list_generations(spool_root, "web1", Tier.WEEKLY) == []

    def test_all_tiers_on_sunday_first(self, make_target, ctx, spool_root):
        _populate_current(spool_root)
        target = make_target(daily=1, weekly=1, monthly=1)
        # 2024-09-01 is a Sunday and the first of the month
        sunday_first = replace(ctx, now=datetime(2024, 9, 1, 3, 0))

        promoted = rotate(target, sunday_first)

        assert promoted == [Tier.MONTHLY, Tier.WEEKLY, Tier.DAILY]
        tdir = spool_root / "web1"
        current_ino = _ino(tdir / "current" / "index.html")
        for name in ("daily-0", "weekly-0", "monthly-0"):
            assert _ino(tdir / name / "index.html") == current_ino

    def test_zero_depth_creates_nothing(self, make_target, ctx, spool_root):
        _populate_current(spool_root)

        assert rotate(make_target(daily=0), ctx) == []
        assert sorted(p.name for p in (spool_root / "web1").iterdir()) == ["current"]

    def test_failed_tier_does_not_stop_others(
        self, make_target, ctx, spool_root, monkeypatch
    ):
        _populate_current(spool_root)
        real_clone = rotation.clone_tree

        def flaky_clone(source, destination):
            if destination.name.startswith("weekly"):
                raise OSError(28, "No space left on device")
            real_clone(source, destination)

        monkeypatch.setattr(rotation, "clone_tree", flaky_clone)
        target = make_target(daily=2, weekly=2, monthly=2)
        sunday_first = replace(ctx, now=datetime(2024, 9, 1, 3, 0))

        with pytest.raises(RotationError) as excinfo:
            rotate(target, sunday_first)

        assert excinfo.value.tiers == [Tier.WEEKLY]
        assert spool.list_generations(spool_root, "web1", Tier.MONTHLY) == [0]
        assert spool.list_generations(spool_root, "web1", Tier.DAILY) == [0]

    def test_current_and_marker_untouched(self, make_target, ctx, spool_root):
        current = _populate_current(spool_root)
        marker = spool.marker_path(spool_root, "web1")
        marker.touch()
        os.utime(marker, (1000, 1000))
        before = _ino(current / "index.html")

        rotate(make_target(), ctx)

        assert _ino(current / "index.html") == before
        assert os.stat(marker).st_mtime == 1000
