"""Tests for shared utilities and logger setup."""

import logging
import subprocess
from datetime import datetime

import pytest

from spool_backup import __util__
from spool_backup.__logger__ import create_logger


class TestDescribeFailure:
    """Tests for describe_failure function."""

    def test_last_stderr_line(self):
        proc = subprocess.CompletedProcess(["rsync"], 23, "", "warning\nrsync error: partial\n")
        assert __util__.describe_failure(proc) == "exit status 23: rsync error: partial"

    def test_bytes_and_empty_stderr(self):
        assert __util__.describe_failure(subprocess.CompletedProcess([], 1, b"", b"")) == (
            "exit status 1"
        )
        proc = subprocess.CompletedProcess([], 2, b"", b"busy\n")
        assert __util__.describe_failure(proc) == "exit status 2: busy"


class TestFormatting:
    """Tests for formatting helpers."""

    def test_format_command_quotes(self):
        assert __util__.format_command(["ssh", "-i", "/my key"]) == "ssh -i '/my key'"

    def test_format_timestamp(self):
        when = datetime(2024, 3, 13, 2, 5, 9)
        assert __util__.format_timestamp(when) == "2024-03-13 02:05:09"
        assert __util__.format_timestamp(when.timestamp()) == "2024-03-13 02:05:09"

    @pytest.mark.parametrize(
        "seconds,expected",
        [(30, "0m"), (600, "10m"), (3720, "1h 2m"), (90000, "1d 1h"), (-5, "0m")],
    )
    def test_humanize_age(self, seconds, expected):
        assert __util__.humanize_age(seconds) == expected

    def test_log_heading(self):
        assert __util__.log_heading("Target: web1") == "--[ Target: web1 ]--"


class TestCreateLogger:
    """Tests for create_logger function."""

    def test_sets_level(self):
        create_logger(level="WARNING")
        assert logging.getLogger().level == logging.WARNING

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "spool-backup.log"
        create_logger(level="INFO", log_file=str(log_file))

        logging.getLogger("spool_backup.test").info("hello file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "INFO spool_backup.test: hello file" in log_file.read_text()
        create_logger()
