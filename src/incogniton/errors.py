"""
Errors
======
Every failure the client surfaces derives from ``IncognitonError`` so callers
can tell which layer failed:

    TransportError       no connection, or the connection broke mid-flight.
    RequestTimeoutError  the request outlived its timeout (not a TransportError).
    APIError             the service answered with a non-2xx status.
    AuthorizationError   a token was required and none could be obtained.
    PollTimeoutError     a launched browser's CDP endpoint never came up.
"""

from typing import Any


class IncognitonError(Exception):
    """Base class for all errors raised by this package."""


class AuthorizationError(IncognitonError):
    def __init__(self, url: str):
        super().__init__(f"Request to {url} requires an authorization token")
        self.url = url


class TransportError(IncognitonError):
    def __init__(self, url: str, code: str, message: str):
        super().__init__(f"Request to {url} failed: {message}")
        self.url = url
        self.code = code
        self.transport_message = message


class RequestTimeoutError(IncognitonError):
    """The request outlived its ``timeout`` (seconds), counted over the whole call."""

    def __init__(self, url: str, timeout: float):
        super().__init__(f"Request to {url} timed out after {timeout:g}s")
        self.url = url
        self.timeout = timeout
        self.code = "ETIMEDOUT"


class APIError(IncognitonError):
    """The service rejected the request. ``data`` holds the decoded response body."""

    def __init__(self, url: str, status: int, data: Any):
        if isinstance(data, dict) and isinstance(data.get("message"), str):
            message = data["message"]
        else:
            message = f"Request to {url} failed with status {status}"
        super().__init__(message)
        self.url = url
        self.status = status
        self.data = data
        self.message = message


class PollTimeoutError(IncognitonError):
    def __init__(self, endpoint: str, elapsed: float):
        super().__init__(f"CDP endpoint {endpoint} was not ready after {elapsed:.1f}s")
        self.endpoint = endpoint
        self.elapsed = elapsed


class LaunchError(IncognitonError):
    """The launch call succeeded but did not return a usable connection URL."""


class MissingDependencyError(IncognitonError):
    def __init__(self, package: str, extra: str):
        super().__init__(f"{package} is not installed. Install it with: pip install 'incogniton[{extra}]'")
        self.package = package
        self.extra = extra
