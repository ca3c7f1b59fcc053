"""Supervision engine - controller, pid file guard and runner registry."""

from .controller import Controller
from .pidfile import PidFile, SingletonGuard
from .process_manager import ProcessManager
from .registry import RunnerRegistry

__all__ = ["Controller", "PidFile", "SingletonGuard", "ProcessManager", "RunnerRegistry"]
