"""OS process operations used by the controller."""

import os

from runner_daemon.core.models import ReapResult


class ProcessManager:
    """Thin wrapper over fork, reap, signal and exit calls.

    Kept separate from the controller so supervision logic can be driven
    by a fake in tests.
    """

    def fork(self) -> int:
        """Fork the current process. Returns 0 in the child."""
        return os.fork()

    def detach_session(self) -> None:
        """Become session leader, dropping the controlling terminal."""
        os.setsid()

    def reap(self) -> ReapResult:
        """Collect every finished child without blocking."""
        result = ReapResult()
        while True:
            try:
                pid, status = os.waitpid(-1, os.WNOHANG)
            except ChildProcessError:
                result.no_children = True
                return result
            if pid == 0:
                return result
            result.pids.append(pid)
            result.exit_codes[pid] = os.waitstatus_to_exitcode(status)

    def send_signal(self, pid: int, sig: int) -> None:
        os.kill(pid, sig)

    def exit(self, code: int) -> None:
        """Leave a forked child without running the parent's cleanup."""
        os._exit(code)
