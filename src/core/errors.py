"""
Error taxonomy and result type for API calls.

Failures surface in one of four shapes:

- transport failure: ApiError with status None (offline, DNS, malformed response)
- HTTP failure: ApiError with the response status and parsed body
- session expired: SessionExpiredError, raised when the refresh call itself fails
- cancelled: RequestCancelledError, deliberately NOT an ApiError so callers can
  tell "user navigated away" apart from "request failed"
"""
from dataclasses import dataclass
from typing import Any


class ApiError(Exception):
    """Raised when an API call fails."""

    def __init__(self, message: str, status: int | None = None, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    @property
    def is_transport_failure(self) -> bool:
        """True when no response was obtained at all."""
        return self.status is None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, status={self.status!r})"


class SessionExpiredError(ApiError):
    """Raised when a 401 could not be recovered because the refresh call failed."""


class RequestCancelledError(Exception):
    """Raised when the caller's cancellation signal fires before a result is available."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Request to {path} was cancelled")


@dataclass
class ApiResult:
    """
    Outcome of one API exchange.

    Exactly one of `error` or the success fields is meaningful: when `error` is
    set the call failed, otherwise `data` holds the parsed response body.
    """

    data: Any
    status: int | None
    error: ApiError | None = None

    @property
    def ok(self) -> bool:
        """Whether the exchange succeeded."""
        return self.error is None

    def unwrap(self) -> Any:
        """Return the payload or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.data

    @classmethod
    def failure(cls, error: ApiError) -> "ApiResult":
        """Build a failed result from an error."""
        return cls(data=error.data, status=error.status, error=error)


def error_message(data: Any, fallback: str) -> str:
    """Pick the most useful human-readable message out of an error body."""
    if isinstance(data, dict):
        for key in ("message", "error"):
            value = data.get(key)
            if value:
                return str(value)
    return fallback
