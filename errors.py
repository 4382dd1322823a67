"""
Error taxonomy for the analytics pipeline.
"""

from typing import Any, Dict, Optional


class AnalyticsError(Exception):
    """Base exception for analytics errors."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Single user-visible error object."""
        payload: Dict[str, Any] = {"error": self.message}
        if self.status_code is not None:
            payload["status_code"] = self.status_code
        return payload


class UpstreamUnavailable(AnalyticsError):
    """Upstream call failed after all retries, or with a non-retryable status."""


class NotFound(AnalyticsError):
    """Upstream resource does not exist (HTTP 404)."""


class InsufficientHistory(AnalyticsError):
    """Fewer data points than a metric requires."""


class UndefinedReturn(AnalyticsError):
    """A return was requested over a zero starting value."""


class InvalidInput(AnalyticsError, ValueError):
    """Missing or malformed request identifier or parameter."""
