"""
Error taxonomy shared by the linking and sync services.

Messages on these exceptions are safe to show to the caller. Provider
response bodies are kept on ``UpstreamError.body`` for logging only.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Optional


class PostMetricError(Exception):
    """Base class for failures surfaced to API callers."""

    code = "internal"
    http_status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthenticatedError(PostMetricError):
    """Raised when no verified caller identity is available."""

    code = "unauthenticated"
    http_status = HTTPStatus.UNAUTHORIZED


class InvalidArgumentError(PostMetricError):
    """Raised when a required field is missing or malformed."""

    code = "invalid_argument"
    http_status = HTTPStatus.BAD_REQUEST


class FailedPreconditionError(PostMetricError):
    """Raised when the user must restart the flow or (re)link the account."""

    code = "failed_precondition"
    http_status = HTTPStatus.CONFLICT


class SecurityViolationError(PostMetricError):
    """Raised when the OAuth state does not match the pending authorization."""

    code = "security_violation"
    http_status = HTTPStatus.FORBIDDEN


class UpstreamError(PostMetricError):
    """Raised when the X API fails, times out, or returns a malformed payload."""

    code = "upstream_error"
    http_status = HTTPStatus.BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class QuotaExceededError(PostMetricError):
    """Raised when X reports depleted credits or an exhausted rate limit."""

    code = "quota_exceeded"
    http_status = HTTPStatus.TOO_MANY_REQUESTS

    def __init__(
        self,
        message: str = (
            "X API usage limit reached. Wait for the quota to reset or upgrade "
            "the API plan, then sync again."
        ),
        *,
        retry_after: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.retry_after = retry_after
        self.body = body


__all__ = [
    "FailedPreconditionError",
    "InvalidArgumentError",
    "PostMetricError",
    "QuotaExceededError",
    "SecurityViolationError",
    "UnauthenticatedError",
    "UpstreamError",
]
