"""Runner Daemon - single-instance pre-forking supervisor for repeated work."""

__version__ = "0.1.0"

from runner_daemon.core.config import DaemonSettings
from runner_daemon.core.models import EXIT_ERROR, EXIT_OK, StopFlag
from runner_daemon.daemon import Daemon

__all__ = ["Daemon", "DaemonSettings", "StopFlag", "EXIT_OK", "EXIT_ERROR", "__version__"]
