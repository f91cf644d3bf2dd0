"""Pytest configuration and shared fixtures."""

import subprocess
from datetime import datetime
from pathlib import Path

import pytest

from spool_backup import __util__
from spool_backup.config import MountConfig, RetentionConfig, TargetConfig
from spool_backup.core import RunContext
from spool_backup.transaction import set_transaction_log


@pytest.fixture
def tmp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return """
[global]
spool_dir = "/srv/backup"
excludes = ["/proc", "/sys"]
warning_age = 3600
critical_age = 7200

[global.retention]
daily = 7
weekly = 4
monthly = 6
weekly_day = "sunday"
monthly_day = 1

[[targets]]
name = "web1"
source = "root@web1.example.com:/var/www"
excludes = ["/var/www/cache"]

[[targets]]
name = "db1"
host = "db1.example.com"
user = "backup"
remote_path = "/var/lib/postgresql"
ssh_port = 2222
spool_dir = "/mnt/backup-disk"
bwlimit = "10M"

[targets.retention]
daily = 14

[targets.mount]
device = "/dev/sdb1"
mountpoint = "/mnt/backup-disk"
"""


@pytest.fixture
def minimal_config_toml():
    """Return a minimal valid TOML configuration string."""
    return """
[[targets]]
name = "web1"
source = "web1:/"
spool_dir = "/srv/backup"
"""


@pytest.fixture
def config_file(tmp_config_dir, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_path = tmp_config_dir / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path


@pytest.fixture
def minimal_config_file(tmp_config_dir, minimal_config_toml):
    """Create a temporary config file with minimal content."""
    config_path = tmp_config_dir / "minimal.toml"
    config_path.write_text(minimal_config_toml)
    return config_path


@pytest.fixture
def spool_root(tmp_path):
    """An empty spool root directory."""
    root = tmp_path / "spool"
    root.mkdir()
    return root


@pytest.fixture
def make_target(spool_root):
    """Factory for TargetConfig records living in the temporary spool root."""

    def _make(name="web1", daily=3, weekly=0, monthly=0, mount=None, **kwargs):
        kwargs.setdefault("host", "web1.example.com")
        kwargs.setdefault("remote_path", "/var/www")
        return TargetConfig(
            name=name,
            spool_dir=spool_root,
            retention=RetentionConfig(daily=daily, weekly=weekly, monthly=monthly),
            mount=mount,
            **kwargs,
        )

    return _make


@pytest.fixture
def mount_config(tmp_path):
    return MountConfig(device="/dev/sdb1", mountpoint=str(tmp_path / "mnt"))


@pytest.fixture
def ctx():
    """Run context at a fixed Wednesday, not a weekly or monthly promotion day."""
    return RunContext(now=datetime(2024, 3, 13, 2, 0, 0))


class FakeProcesses:
    """Records commands and answers them with configured return codes.

    ``rsync`` invocations can populate the destination tree so the rest of
    the pipeline sees a real transfer result.
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.returncodes: dict[str, int] = {}
        self.errors: dict[str, OSError] = {}
        self.failing_args: dict[str, int] = {}
        self.rsync_files: dict[str, str] = {"index.html": "hello"}
        self.rsync_stdout = "Total transferred file size: 1,234 bytes\n"

    def fail(self, program: str, returncode: int = 1) -> None:
        self.returncodes[program] = returncode

    def fail_matching(self, text: str, returncode: int = 1) -> None:
        """Fail any command with an argument containing ``text``."""
        self.failing_args[text] = returncode

    def raise_for(self, program: str, error: OSError) -> None:
        self.errors[program] = error

    def programs(self) -> list[str]:
        return [Path(cmd[0]).name for cmd in self.calls]

    def __call__(self, cmd, **kwargs):
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)
        program = Path(cmd[0]).name
        if program in self.errors:
            raise self.errors[program]

        returncode = self.returncodes.get(program, 0)
        for text, code in self.failing_args.items():
            if any(text in part for part in cmd):
                returncode = code
        stdout = ""
        stderr = "" if returncode == 0 else f"{program}: simulated failure\n"
        if program == "rsync" and returncode == 0:
            stdout = self.rsync_stdout
            if "--dry-run" not in cmd:
                destination = Path(cmd[-1])
                for rel, content in self.rsync_files.items():
                    path = destination / rel
                    path.parent.mkdir(parents=True, exist_ok=True)
                    if path.exists():
                        path.unlink()
                    path.write_text(content)
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)


@pytest.fixture
def fake_exec(monkeypatch):
    """Replace subprocess execution with a recording fake."""
    fake = FakeProcesses()
    monkeypatch.setattr(__util__, "exec_subprocess", fake)
    return fake


@pytest.fixture
def transaction_log(tmp_path):
    """Enable the transaction log for one test."""
    path = tmp_path / "transactions.jsonl"
    set_transaction_log(path)
    yield path
    set_transaction_log(None)


@pytest.fixture(autouse=True)
def _reset_transaction_log():
    """CLI commands enable the transaction log globally; never leak it."""
    yield
    set_transaction_log(None)
