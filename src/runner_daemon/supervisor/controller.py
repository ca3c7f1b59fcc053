"""Controller process: owns the pid file and keeps the worker pool at size."""

import os
import signal
import sys
import time
from typing import Dict, Optional

import setproctitle

from runner_daemon.core.config import DaemonSettings
from runner_daemon.core.exceptions import (
    ConfigurationError,
    DetachError,
    NoRunnersError,
    error_details,
)
from runner_daemon.core.models import EXIT_ERROR, EXIT_OK, ProcessState, StopFlag
from runner_daemon.supervisor.pidfile import PidFile
from runner_daemon.supervisor.process_manager import ProcessManager
from runner_daemon.supervisor.registry import RunnerRegistry
from runner_daemon.utils.logging import DaemonLogger
from runner_daemon.worker import Worker

DRAIN_POLL_INTERVAL = 0.05


class Controller:
    """Forks workers, replaces the ones that die and shuts the tree down on SIGTERM."""

    def __init__(
        self,
        settings: DaemonSettings,
        registry: RunnerRegistry,
        logger: DaemonLogger,
        pid_file: Optional[PidFile] = None,
        process_manager: Optional[ProcessManager] = None,
    ):
        self.settings = settings
        self.registry = registry
        self.logger = logger
        self.pid_file = pid_file or PidFile(settings.pid_path)
        self.process_manager = process_manager or ProcessManager()
        # worker pid -> liveness marker
        self.processes: Dict[int, bool] = {}
        self.stop_flag = StopFlag()
        self.state = ProcessState.RUNNING

    def start(self, workers: int = 1) -> None:
        """Detach into the background and supervise until SIGTERM.

        Only the detached controller returns from this call; the invoking
        process exits once the controller pid is printed.
        """
        if workers < 1:
            raise ConfigurationError(f"Worker count must be positive, got {workers}")
        if not len(self.registry):
            raise NoRunnersError("Not set runners for worker process")

        self.detach()
        self.logger.info("Start main process", workers=workers, runners=self.registry.names())

        if self.settings.set_process_title:
            setproctitle.setproctitle(self.settings.process_title("m"))
        self.install_signal_handler()
        self.pid_file.write(os.getpid())

        self.supervise(workers)
        self.shutdown()

    def detach(self) -> None:
        """Fork to the background and become session leader."""
        try:
            pid = self.process_manager.fork()
        except OSError as e:
            raise DetachError("Unable start main process") from e

        if pid:
            print(f"Daemon main process pid {pid}")
            sys.exit(EXIT_OK)

        try:
            self.process_manager.detach_session()
        except OSError as e:
            raise DetachError("Unable set sid for main process") from e

    def install_signal_handler(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_signal)

    def supervise(self, workers: int) -> None:
        """Keep `workers` children alive until the stop flag is set."""
        while not self.stop_flag.is_set():
            try:
                if not self.stop_flag.is_set() and len(self.processes) < workers:
                    self._spawn_worker()

                self._reap_workers()

                if self.settings.reap_interval and len(self.processes) >= workers:
                    time.sleep(self.settings.reap_interval)
            except Exception as e:
                self.logger.error("Main process loop error", error=error_details(e))

    def shutdown(self) -> None:
        """Signal the remaining workers, wait for them and remove the pid file."""
        self.state = ProcessState.DRAINING

        for pid in list(self.processes):
            try:
                self.process_manager.send_signal(pid, signal.SIGTERM)
            except ProcessLookupError:
                self.processes.pop(pid, None)

        self._drain()

        try:
            self.pid_file.remove()
        except OSError as e:
            self.logger.error("Unable delete pid file", path=str(self.pid_file.path), error=error_details(e))

        self.state = ProcessState.STOPPED
        self.logger.info("Stop main process")

    def _spawn_worker(self) -> None:
        # SIGTERM stays blocked across fork; a child signalled before it is
        # ready to handle it keeps the signal pending instead of losing it.
        signal.pthread_sigmask(signal.SIG_BLOCK, {signal.SIGTERM})
        try:
            pid = self.process_manager.fork()
        except OSError as e:
            signal.pthread_sigmask(signal.SIG_UNBLOCK, {signal.SIGTERM})
            self.logger.error("Unable start worker process", error=error_details(e))
            return

        if pid == 0:
            self._run_worker()
            return

        signal.pthread_sigmask(signal.SIG_UNBLOCK, {signal.SIGTERM})
        self.processes[pid] = True
        self.logger.info("Start worker process", pid=pid)

    def _run_worker(self) -> None:
        """Body of a freshly forked child. Never returns to the loop."""
        code = EXIT_ERROR
        try:
            # The inherited handler sets this flag until Worker.run installs
            # its own, so a SIGTERM pending since fork stops the worker.
            self.processes = {}
            signal.pthread_sigmask(signal.SIG_UNBLOCK, {signal.SIGTERM})
            worker = Worker(self.settings, self.registry, self.logger, self.stop_flag)
            code = worker.run()
        except BaseException as e:
            self.logger.error("Worker process failed", error=error_details(e))
        finally:
            self.process_manager.exit(code)

    def _reap_workers(self) -> None:
        result = self.process_manager.reap()

        for pid in result.pids:
            if self.processes.pop(pid, None):
                self.logger.info(
                    "Worker process finished",
                    pid=pid,
                    exit_code=result.exit_codes.get(pid),
                )

        if result.no_children:
            self.processes.clear()

    def _drain(self) -> None:
        deadline = time.monotonic() + self.settings.shutdown_timeout
        while self.processes and time.monotonic() < deadline:
            self._reap_workers()
            if self.processes:
                time.sleep(DRAIN_POLL_INTERVAL)

        if self.processes:
            self.logger.warning(
                "Worker processes still running at shutdown",
                workers=sorted(self.processes),
            )

    def _handle_signal(self, signum, frame):
        """Flip the stop flag; the loop exits at its next check."""
        self.stop_flag.set()
        self.state = ProcessState.DRAINING
