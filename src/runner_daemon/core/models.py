"""Data models shared by the controller and worker processes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


EXIT_OK = 0
EXIT_ERROR = 1


class ProcessState(Enum):
    """Stop protocol state of a daemon process."""
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class StopFlag:
    """Cancellation flag private to one OS process.

    Set once when the termination signal arrives and never reset. Runners
    receive the flag itself and may call it to learn whether they should
    wrap up early.
    """

    def __init__(self):
        self._stopped = False

    def set(self) -> None:
        self._stopped = True

    def is_set(self) -> bool:
        return self._stopped

    def __call__(self) -> bool:
        return self._stopped

    def __repr__(self) -> str:
        return f"StopFlag(stopped={self._stopped})"


@dataclass
class ReapResult:
    """Outcome of one non-blocking pass over finished children."""

    pids: List[int] = field(default_factory=list)
    exit_codes: Dict[int, int] = field(default_factory=dict)
    no_children: bool = False
