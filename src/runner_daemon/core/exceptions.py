"""Custom exceptions for Runner Daemon."""

import traceback
from typing import Any, Dict, Optional


class DaemonError(Exception):
    """Base exception for all fatal daemon errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConfigurationError(DaemonError):
    """Configuration error."""
    pass


class PidFileError(DaemonError):
    """Pid file could not be written."""
    pass


class StalePidFileError(PidFileError):
    """Pid file of a dead process could not be removed."""
    pass


class NoRunnersError(DaemonError):
    """No runners registered before start."""
    pass


class DetachError(DaemonError):
    """Failed to move the controller into the background."""
    pass


def error_details(exc: BaseException) -> Dict[str, Any]:
    """Describe where an exception was raised, for log context."""
    frames = traceback.extract_tb(exc.__traceback__)
    origin = frames[-1] if frames else None
    return {
        "type": type(exc).__name__,
        "file": origin.filename if origin else None,
        "line": origin.lineno if origin else None,
        "message": str(exc),
    }
