"""
Tests for the Daemon entry point: startup checks and exit statuses.
"""

import os

import pytest

from runner_daemon import Daemon, DaemonSettings, EXIT_ERROR, EXIT_OK
from runner_daemon.core import config as config_module
from runner_daemon.supervisor.pidfile import PidFile


def _paths(tmp_path):
    return {
        "pid_file": str(tmp_path / "run" / "testd.pid"),
        "log_file": str(tmp_path / "log" / "testd.log"),
    }


def job(logger, is_stopped):
    pass


class TestDaemonConstruction:
    """Test fatal configuration errors and single-instance detection."""

    def test_empty_name_fails_without_pid_file(self, tmp_path, capsys):
        """Test starting with an empty name fails and creates no pid file."""
        paths = _paths(tmp_path)

        with pytest.raises(SystemExit) as exc_info:
            Daemon("", **paths)

        assert exc_info.value.code == EXIT_ERROR
        assert "Not set daemon name" in capsys.readouterr().err
        assert not os.path.exists(paths["pid_file"])

    def test_missing_name_fails(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            Daemon(**_paths(tmp_path))

        assert exc_info.value.code == EXIT_ERROR

    def test_already_running_exits_ok(self, tmp_path, capsys):
        """Test a live pid in the pid file exits with success and changes nothing."""
        paths = _paths(tmp_path)
        os.makedirs(os.path.dirname(paths["pid_file"]))
        with open(paths["pid_file"], "w") as fh:
            fh.write(str(os.getpid()))

        with pytest.raises(SystemExit) as exc_info:
            Daemon("testd", **paths)

        assert exc_info.value.code == EXIT_OK
        assert "Daemon already running" in capsys.readouterr().out
        with open(paths["pid_file"]) as fh:
            assert fh.read() == str(os.getpid())

    def test_stale_pid_file_removed(self, tmp_path, dead_pid):
        """Test a pid file of a dead process is removed and startup proceeds."""
        paths = _paths(tmp_path)
        os.makedirs(os.path.dirname(paths["pid_file"]))
        with open(paths["pid_file"], "w") as fh:
            fh.write(str(dead_pid))

        daemon = Daemon("testd", **paths)

        assert not os.path.exists(paths["pid_file"])
        assert daemon.name == "testd"
        assert daemon.is_stopped() is False

    def test_undeletable_stale_pid_file_fails(self, tmp_path, dead_pid, monkeypatch, capsys):
        paths = _paths(tmp_path)
        os.makedirs(os.path.dirname(paths["pid_file"]))
        with open(paths["pid_file"], "w") as fh:
            fh.write(str(dead_pid))

        def refuse(self):
            raise PermissionError("read-only")

        monkeypatch.setattr(PidFile, "remove", refuse)

        with pytest.raises(SystemExit) as exc_info:
            Daemon("testd", **paths)

        assert exc_info.value.code == EXIT_ERROR
        assert "Unable delete pid file" in capsys.readouterr().err

    def test_unwritable_directory_fails(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config_module.os, "access", lambda path, mode: False)

        with pytest.raises(SystemExit) as exc_info:
            Daemon("testd", **_paths(tmp_path))

        assert exc_info.value.code == EXIT_ERROR

    def test_unopenable_log_file_fails(self, tmp_path, capsys):
        """Test a log path that cannot be opened is a fatal configuration error."""
        paths = _paths(tmp_path)
        os.makedirs(paths["log_file"])

        with pytest.raises(SystemExit) as exc_info:
            Daemon("testd", **paths)

        assert exc_info.value.code == EXIT_ERROR
        assert "Unable open log file" in capsys.readouterr().err

    def test_invalid_log_level_fails(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            Daemon("testd", log_level="verbose", **_paths(tmp_path))

        assert exc_info.value.code == EXIT_ERROR
        assert "Invalid log level" in capsys.readouterr().err

    def test_settings_and_overrides(self, tmp_path):
        daemon = Daemon("testd", shutdown_timeout=3, **_paths(tmp_path))
        assert daemon.settings.shutdown_timeout == 3

        settings = DaemonSettings(name="other", **_paths(tmp_path))
        assert Daemon(settings=settings).settings is settings


class TestDaemonRunners:
    """Test runner registration through the daemon."""

    def test_add_runners_chains_and_filters(self, tmp_path):
        daemon = Daemon("testd", **_paths(tmp_path))

        result = daemon.add_runners({"job": job, "bad": "nope"})

        assert result is daemon
        assert daemon.registry.names() == ["job"]


class TestDaemonStart:
    """Test start-up exit statuses."""

    def test_start_without_runners_fails(self, tmp_path, capsys):
        """Test zero runners is fatal and logged."""
        paths = _paths(tmp_path)
        daemon = Daemon("testd", **paths)

        with pytest.raises(SystemExit) as exc_info:
            daemon.start()

        assert exc_info.value.code == EXIT_ERROR
        assert "Not set runners for worker process" in capsys.readouterr().err
        with open(paths["log_file"]) as fh:
            assert "testd.ERROR\tNot set runners for worker process" in fh.read()
        assert not os.path.exists(paths["pid_file"])

    def test_start_prints_controller_pid_and_exits(self, tmp_path, capsys, monkeypatch):
        """Test the invoking process reports the background pid and exits with success."""
        paths = _paths(tmp_path)
        daemon = Daemon("testd", **paths).add_runners({"job": job})
        monkeypatch.setattr(daemon.controller.process_manager, "fork", lambda: 4321)

        with pytest.raises(SystemExit) as exc_info:
            daemon.start(workers=2)

        assert exc_info.value.code == EXIT_OK
        assert "Daemon main process pid 4321" in capsys.readouterr().out
        assert not os.path.exists(paths["pid_file"])

    def test_detach_failure_fails(self, tmp_path, monkeypatch):
        daemon = Daemon("testd", **_paths(tmp_path)).add_runners({"job": job})

        def no_fork():
            raise OSError(11, "Resource temporarily unavailable")

        monkeypatch.setattr(daemon.controller.process_manager, "fork", no_fork)

        with pytest.raises(SystemExit) as exc_info:
            daemon.start()

        assert exc_info.value.code == EXIT_ERROR
