"""
Pytest configuration and fixtures for Runner Daemon tests.
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from runner_daemon.core.config import DaemonSettings


class RecordingLogger:
    """Stand-in for DaemonLogger that keeps records in memory."""

    def __init__(self):
        self.records = []

    def record(self, level, message, context=None):
        self.records.append((level.lower(), message, dict(context or {})))

    def debug(self, message, **context):
        self.record("debug", message, context)

    def info(self, message, **context):
        self.record("info", message, context)

    def warning(self, message, **context):
        self.record("warning", message, context)

    def error(self, message, **context):
        self.record("error", message, context)

    def exception(self, message, **context):
        self.record("error", message, context)

    def messages(self, level=None):
        return [message for lvl, message, _ in self.records if level is None or lvl == level]


@pytest.fixture(autouse=True)
def clean_daemon_env(monkeypatch):
    """
    Keep RUNNER_DAEMON_* variables from the developer's shell out of tests.
    """
    for key in list(os.environ):
        if key.startswith("RUNNER_DAEMON_"):
            monkeypatch.delenv(key)


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def dead_pid():
    """Pid of a process that has already exited and been reaped."""
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    return proc.pid


@pytest.fixture
def make_settings(tmp_path):
    """Settings with pid and log files under tmp_path and no idle waits."""

    def _make(**overrides):
        values = {
            "name": "testd",
            "pid_file": str(tmp_path / "run" / "testd.pid"),
            "log_file": str(tmp_path / "log" / "testd.log"),
            "reap_interval": 0,
            "shutdown_timeout": 0,
            "set_process_title": False,
        }
        values.update(overrides)
        return DaemonSettings(**values)

    return _make
