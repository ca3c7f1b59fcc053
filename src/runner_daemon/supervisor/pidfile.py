"""Pid file handling and single-instance enforcement."""

from pathlib import Path
from typing import Optional, Union

import psutil

from runner_daemon.core.exceptions import PidFileError, StalePidFileError


class PidFile:
    """Plain text file holding the controller's process id."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Optional[int]:
        """Return the recorded pid, or None when missing or unreadable."""
        try:
            return int(self.path.read_text(encoding="utf-8").strip())
        except (FileNotFoundError, ValueError):
            return None

    def write(self, pid: int) -> None:
        try:
            self.path.write_text(str(pid), encoding="utf-8")
        except OSError as e:
            raise PidFileError(f"Unable write pid file {self.path}: {e}") from e

    def remove(self) -> None:
        """Delete the file if present. OSError propagates to the caller."""
        if self.path.is_file():
            self.path.unlink()


class SingletonGuard:
    """Decides whether a daemon with this pid file is already running."""

    def __init__(self, pid_file: PidFile):
        self.pid_file = pid_file

    def running_pid(self) -> Optional[int]:
        """Pid of the live controller, looked up without side effects."""
        pid = self.pid_file.read()
        if pid is not None and pid > 0 and psutil.pid_exists(pid):
            return pid
        return None

    def is_active(self) -> bool:
        """True if a live controller owns the pid file.

        A pid file left behind by a dead process is removed so a new
        controller can start.
        """
        if not self.pid_file.exists():
            return False

        if self.running_pid() is not None:
            return True

        try:
            self.pid_file.remove()
        except OSError as e:
            raise StalePidFileError(f"Unable delete pid file {self.pid_file.path}") from e
        return False
