"""Error taxonomy for outbound calls and run setup.

Service errors are split by whether retrying can help:
- TransientServiceError: rate limits, gateway errors, timeouts, resets
- FatalServiceError: auth, validation, not found, anything unclassified
"""

from __future__ import annotations

import httpx


class ReviewError(Exception):
    """Base class for errors raised by the review pipeline."""


class ConfigError(ReviewError, ValueError):
    """Configuration is missing or invalid."""


class SetupError(ReviewError):
    """Pull request metadata or file list could not be obtained."""


class ServiceError(ReviewError):
    """An external service call failed."""

    def __init__(
        self,
        message: str,
        *,
        service: str = "",
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class TransientServiceError(ServiceError):
    """Failure that may succeed on a later attempt."""


class FatalServiceError(ServiceError):
    """Failure that will not go away by retrying."""


def error_from_response(
    response: httpx.Response,
    *,
    service: str,
    transient_status: frozenset[int],
) -> ServiceError:
    """Build the service error matching an HTTP error response."""
    status = response.status_code
    detail = response.text[:500] if response.content else response.reason_phrase
    message = f"{service} returned {status}: {detail}"
    if status in transient_status:
        return TransientServiceError(message, service=service, status_code=status)
    return FatalServiceError(message, service=service, status_code=status)


def error_from_transport(error: httpx.TransportError, *, service: str) -> ServiceError:
    """Build the service error matching a transport-level failure."""
    message = f"{service} request failed: {type(error).__name__}: {error}"
    if isinstance(
        error,
        (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError, httpx.RemoteProtocolError),
    ):
        return TransientServiceError(message, service=service)
    return FatalServiceError(message, service=service)
