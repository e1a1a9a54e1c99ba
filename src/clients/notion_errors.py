"""Exceptions raised by the Notion API client.

Every error carries the same shape (message, status_code, code, retryable,
retry_after_seconds) so callers can decide whether to re-issue a call without
inspecting HTTP details themselves.
"""

from typing import Any


class NotionApiError(Exception):
    """Exception raised for Notion API errors that have no more specific class."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        retryable: bool = False,
        retry_after_seconds: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.retryable = retryable
        self.retry_after_seconds = retry_after_seconds


class AuthenticationError(NotionApiError):
    """Missing, invalid or expired integration token."""

    def __init__(self, message: str, status_code: int | None = 401):
        super().__init__(message, status_code=status_code, code="UNAUTHORIZED")


class ForbiddenError(NotionApiError):
    """
    The token is valid but the integration has not been granted access to the resource.
    Remediation is sharing the page/database with the integration, not re-authenticating.
    """

    def __init__(self, message: str):
        super().__init__(message, status_code=403, code="FORBIDDEN")


class NotFoundError(NotionApiError):
    def __init__(self, resource: str, identifier: str, endpoint: str):
        super().__init__(
            f"{resource} not found: {identifier} ({endpoint})",
            status_code=404,
            code="NOT_FOUND",
        )
        self.resource = resource
        self.identifier = identifier
        self.endpoint = endpoint


class RateLimitError(NotionApiError):
    def __init__(self, message: str, retry_after_seconds: int):
        super().__init__(
            message,
            status_code=429,
            code="RATE_LIMITED",
            retryable=True,
            retry_after_seconds=retry_after_seconds,
        )


class NotionTransportError(NotionApiError):
    """Failure below the HTTP status layer: connection errors, timeouts, unreadable bodies."""

    def __init__(self, message: str):
        super().__init__(message, code="TRANSPORT_ERROR")


def format_error_for_logging(error: object) -> dict[str, Any]:
    """Project any failure value into a flat, JSON-serializable dict for logs and error payloads."""
    if isinstance(error, NotionApiError):
        info: dict[str, Any] = {
            "name": type(error).__name__,
            "message": error.message,
            "status_code": error.status_code,
            "code": error.code,
            "retryable": error.retryable,
        }
        if error.retry_after_seconds is not None:
            info["retry_after_seconds"] = error.retry_after_seconds
        if isinstance(error, NotFoundError):
            info["resource"] = error.resource
            info["identifier"] = error.identifier
            info["endpoint"] = error.endpoint
        return info

    if isinstance(error, BaseException):
        return {"name": type(error).__name__, "message": str(error)}

    return {"message": str(error)}
