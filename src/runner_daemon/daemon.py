"""Public entry point: a named, single-instance, multi-process daemon."""

import sys
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from runner_daemon.core.config import DaemonSettings, prepare_directories
from runner_daemon.core.exceptions import ConfigurationError, DaemonError
from runner_daemon.core.models import EXIT_ERROR, EXIT_OK
from runner_daemon.supervisor.controller import Controller
from runner_daemon.supervisor.pidfile import PidFile, SingletonGuard
from runner_daemon.supervisor.registry import RunnerRegistry
from runner_daemon.utils.logging import DaemonLogger, setup_logging


class Daemon:
    """Multi-process daemon running registered runners in a worker pool.

    Construction validates the configuration, prepares the pid and log
    directories and exits early when a daemon with the same pid file is
    already running. Fatal problems end the invoking process with
    EXIT_ERROR and a message on the terminal.

    Example::

        daemon = Daemon("mailer")
        daemon.add_runners({"send": send_pending, "cleanup": cleanup})
        daemon.start(workers=4)

    Each runner is called as ``runner(logger, is_stopped)``.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        pid_file: Optional[str] = None,
        log_file: Optional[str] = None,
        settings: Optional[DaemonSettings] = None,
        **overrides: Any,
    ):
        self.logger: Optional[DaemonLogger] = None

        try:
            if settings is None:
                values = {"name": name, "pid_file": pid_file, "log_file": log_file, **overrides}
                settings = DaemonSettings(**{k: v for k, v in values.items() if v is not None})
            self.settings = settings
            prepare_directories(self.settings)
            self.pid_file = PidFile(self.settings.pid_path)
            if SingletonGuard(self.pid_file).is_active():
                self._exit(EXIT_OK, "Daemon already running")
            try:
                setup_logging(self.settings.log_level, self.settings.log_format, self.settings.log_path)
            except OSError as e:
                raise ConfigurationError(f"Unable open log file {self.settings.log_path}: {e}") from e
        except ValidationError as e:
            self._exit(EXIT_ERROR, "; ".join(error["msg"] for error in e.errors()))
        except DaemonError as e:
            self._exit(EXIT_ERROR, str(e))

        self.logger = DaemonLogger(self.settings.name)
        self.registry = RunnerRegistry()
        self.controller = Controller(self.settings, self.registry, self.logger, pid_file=self.pid_file)

    @property
    def name(self) -> str:
        return self.settings.name

    def add_runners(self, runners: Mapping[str, Any]) -> "Daemon":
        """Register runners by name; non-callable values are ignored."""
        self.registry.register_many(runners)
        return self

    def start(self, workers: int = 1) -> None:
        """Detach and supervise `workers` processes until SIGTERM."""
        try:
            self.controller.start(workers)
        except DaemonError as e:
            self._exit(EXIT_ERROR, str(e))
        self._exit(EXIT_OK)

    def is_stopped(self) -> bool:
        """Whether this process has received the termination signal."""
        return self.controller.stop_flag.is_set()

    def _exit(self, code: int = EXIT_OK, message: str = "") -> None:
        if message:
            print(message, file=sys.stdout if code == EXIT_OK else sys.stderr)
            if self.logger is not None:
                if code == EXIT_OK:
                    self.logger.info(message)
                else:
                    self.logger.error(message)
        sys.exit(code)
