"""Tests for the monitoring check command and standalone plugin."""

import os
import time

import pytest

from spool_backup.cli import check
from spool_backup.cli.dispatcher import main as dispatcher_main


def _fresh(root, name, age=0):
    tdir = root / name
    tdir.mkdir()
    marker = tdir / "last_run"
    marker.touch()
    stamp = time.time() - age
    os.utime(marker, (stamp, stamp))


class TestCheckPlugin:
    """Tests for check_spool_backup exit codes and output."""

    def test_ok(self, spool_root, capsys):
        _fresh(spool_root, "web1")

        assert check.main(["--dir", str(spool_root)]) == 0
        assert capsys.readouterr().out.startswith("OK:")

    def test_warning(self, spool_root, capsys):
        _fresh(spool_root, "web1", age=7200)

        code = check.main(["--dir", str(spool_root), "--warning", "3600", "--critical", "86400"])

        assert code == 1
        out = capsys.readouterr().out.splitlines()
        assert out[0] == "WARNING: 1 of 1 backup target(s) warning"
        assert out[1].startswith("web1: ")

    def test_critical_no_backup(self, spool_root, capsys):
        _fresh(spool_root, "web1")
        (spool_root / "db1").mkdir()

        assert check.main(["--dir", str(spool_root)]) == 2
        assert "db1: NO BACKUP" in capsys.readouterr().out

    def test_unknown_empty(self, spool_root, capsys):
        assert check.main(["--dir", str(spool_root)]) == 3
        assert capsys.readouterr().out.strip() == "UNKNOWN: No backup targets found."

    def test_unknown_missing_dir(self, tmp_path):
        assert check.main(["--dir", str(tmp_path / "missing")]) == 3

    def test_negative_threshold(self, spool_root, capsys):
        assert check.main(["--dir", str(spool_root), "--warning", "-5"]) == 3
        assert capsys.readouterr().out.startswith("UNKNOWN:")

    def test_argument_error_exits_unknown(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            check.main([])

        assert excinfo.value.code == 3
        assert capsys.readouterr().out.startswith("UNKNOWN:")


class TestCheckSubcommand:
    """Tests for 'spool-backup check'."""

    def test_same_result_as_plugin(self, spool_root, capsys):
        _fresh(spool_root, "web1", age=100000)

        assert dispatcher_main(["check", "--dir", str(spool_root)]) == 2
        assert capsys.readouterr().out.startswith("CRITICAL:")
