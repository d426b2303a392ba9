"""Custom exceptions for fitpick."""


class FitPickError(Exception):
    """Base exception for all fitpick errors."""


class ConfigError(FitPickError):
    """Configuration-related errors."""


class InvalidInputError(FitPickError, ValueError):
    """Invalid search parameters (target, K, size bounds, rule options)."""


class DataSourceError(FitPickError):
    """A source file could not be read or does not hold an array of rows."""


class ExportError(FitPickError):
    """Result export errors."""


class DispatchError(FitPickError):
    """Worker pool dispatch errors."""


class QueueFullError(DispatchError):
    """Raised when the dispatcher already holds its maximum of pending tasks."""

    def __init__(self, capacity: int):
        super().__init__(
            f"Search queue is full ({capacity} tasks pending). Try again later."
        )
        self.capacity = capacity


class DispatchTimeoutError(DispatchError):
    """Raised when a dispatched search does not finish in time."""

    def __init__(self, timeout: float):
        super().__init__(f"Search did not finish within {timeout:g}s")
        self.timeout = timeout
