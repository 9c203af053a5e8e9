from enum import Enum


class ErrorKind(str, Enum):
    AUTH = "auth"  # missing or rejected credential
    NETWORK = "network"  # transport failure or timeout
    UPSTREAM = "upstream"  # non-2xx application error from the remote service


class CompletionError(Exception):
    """Raised by the completion client for any failed (non-cancelled) request."""

    kind: ErrorKind

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(CompletionError):
    kind = ErrorKind.AUTH


class NetworkError(CompletionError):
    kind = ErrorKind.NETWORK


class UpstreamError(CompletionError):
    kind = ErrorKind.UPSTREAM
