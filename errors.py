"""
Exception types shared by the fetcher, the writer and the orchestrator.
"""
from typing import Optional


class AnalyticsError(Exception):
    """Base class for pr-analytics errors."""


class NotFoundError(AnalyticsError):
    """The requested entity was deleted or is not visible to the token."""


class RateLimitedError(AnalyticsError):
    """The forge refused a request because the quota is exhausted."""

    def __init__(self, message: str, reset_at: Optional[float] = None):
        super().__init__(message)
        self.reset_at = reset_at


class TransientNetworkError(AnalyticsError):
    """Any other request failure (connection errors, 5xx, malformed payloads)."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RetryExhaustedError(AnalyticsError):
    """A finite retry policy gave up on a rate-limited request."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class PersistenceError(AnalyticsError):
    """Writing an output artifact failed; the run cannot continue."""
