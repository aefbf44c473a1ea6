from __future__ import annotations


class NotifyError(Exception):
    """Base class for notification workflow errors."""


class TransportError(NotifyError):
    """Raised when a channel send raises or reports failure."""


class ChannelTimeoutError(TransportError):
    """Raised when a channel send does not finish within its time budget."""


class PayloadError(NotifyError, ValueError):
    """Raised when a trigger payload is missing required fields."""


class ConfigError(NotifyError, ValueError):
    """Raised when environment configuration cannot be resolved."""


class StepFailedError(NotifyError):
    """Raised by a named step once its retry budget is exhausted."""

    def __init__(self, step_name: str, attempts: int, cause: BaseException) -> None:
        super().__init__(str(cause) or type(cause).__name__)
        self.step_name = step_name
        self.attempts = attempts
        self.__cause__ = cause
