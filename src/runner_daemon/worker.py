"""Worker process - runs every registered runner until told to stop."""

import signal
from typing import Optional

import setproctitle

from runner_daemon.core.config import DaemonSettings
from runner_daemon.core.exceptions import error_details
from runner_daemon.core.models import EXIT_OK, ProcessState, StopFlag
from runner_daemon.supervisor.registry import RunnerRegistry
from runner_daemon.utils.logging import DaemonLogger


class Worker:
    """Runner loop of a single forked worker process."""

    def __init__(
        self,
        settings: DaemonSettings,
        registry: RunnerRegistry,
        logger: DaemonLogger,
        stop_flag: Optional[StopFlag] = None,
    ):
        self.settings = settings
        self.registry = registry
        self.logger = logger
        self.stop_flag = stop_flag or StopFlag()
        self.state = ProcessState.RUNNING
        self.passes = 0

    def run(self) -> int:
        """Run passes until SIGTERM arrives, then return the exit status."""
        if self.settings.set_process_title:
            setproctitle.setproctitle(self.settings.process_title("c"))

        previous_handler = signal.signal(signal.SIGTERM, self._handle_signal)
        try:
            while not self.stop_flag.is_set():
                self.run_pass()
        finally:
            signal.signal(signal.SIGTERM, previous_handler)

        self.state = ProcessState.STOPPED
        self.logger.info("Stop worker process")
        return EXIT_OK

    def run_pass(self) -> None:
        """Invoke each runner once, in registration order.

        A failing runner is logged and skipped; the rest of the pass still runs.
        A runner calling sys.exit() counts as failing and does not end the worker.
        """
        for name, runner in self.registry.items():
            try:
                runner(self.logger, self.stop_flag)
            except (Exception, SystemExit) as e:
                self.logger.error(f"Runner `{name}` error", runner=name, error=error_details(e))
        self.passes += 1

    def _handle_signal(self, signum, frame):
        """Flip the stop flag; the pass in progress is allowed to finish."""
        self.stop_flag.set()
        self.state = ProcessState.DRAINING
