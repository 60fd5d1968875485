"""
Backend error handling module.

All failures coming from the external management tool are raised as one of
the BackendError subclasses below, so callers only need to catch the base
class at the point where errors are turned into user messages.
"""

import logging


class BackendError(Exception):
    """Base class for errors raised by the backend adapter."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class BackendUnavailable(BackendError):
    """The management tool is missing, failed to launch or could not list VMs."""


class ParseFailure(BackendError):
    """The output of the management tool is not in the expected format."""


class OperationFailed(BackendError):
    """A start/shutdown/console/ssh request returned an error."""


def log_backend_error(action: str, error: BackendError) -> None:
    """
    Log a backend error with a level matching its severity.

    Args:
        action: What was being attempted, e.g. "start vm1"
        error: The error raised by the backend adapter
    """
    if isinstance(error, ParseFailure):
        log_level = logging.WARNING
    else:
        log_level = logging.ERROR

    logging.log(
        log_level,
        "backend error during '%s': %s: %s",
        action,
        type(error).__name__,
        error.message,
    )
