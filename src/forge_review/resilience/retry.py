"""
Retry Executor

Bounded-attempt retry with exponential backoff for any fallible async unit
of work. Which errors are worth retrying is configuration, so each external
service can bring its own vocabulary of transient failures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .errors import FatalServiceError, TransientServiceError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RetryPredicate = Callable[[BaseException], bool]

DEFAULT_RETRYABLE_STATUS: frozenset[int] = frozenset({429, 502, 503, 504})

DEFAULT_RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    TimeoutError,
    ConnectionResetError,
)

DEFAULT_MESSAGE_MARKERS: frozenset[str] = frozenset({"ETIMEDOUT", "ECONNRESET"})


def _status_of(error: BaseException) -> int | None:
    """Pull an HTTP status code off an error, if it carries one."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    return None


@dataclass(frozen=True)
class RetryableConditions:
    """A set of matchable conditions that mark an error as transient.

    An error carrying an HTTP status is judged by `status_codes` alone.
    Without one, the transient/fatal tag decides, then exception types,
    then message markers.
    """

    status_codes: frozenset[int] = DEFAULT_RETRYABLE_STATUS
    exception_types: tuple[type[BaseException], ...] = DEFAULT_RETRYABLE_EXCEPTIONS
    message_markers: frozenset[str] = DEFAULT_MESSAGE_MARKERS

    def matches(self, error: BaseException) -> bool:
        """Return True if the error should be retried."""
        status = _status_of(error)
        if status is not None:
            return status in self.status_codes

        if isinstance(error, TransientServiceError):
            return True
        if isinstance(error, FatalServiceError):
            return False

        if self.exception_types and isinstance(error, self.exception_types):
            return True

        message = str(error)
        return any(marker in message for marker in self.message_markers)

    def __call__(self, error: BaseException) -> bool:
        return self.matches(error)


# Per-service vocabularies; GitHub answers 500 for the occasional overloaded request
GITHUB_RETRY_CONDITIONS = RetryableConditions(
    status_codes=frozenset({429, 500, 502, 503, 504}),
)
LLM_RETRY_CONDITIONS = RetryableConditions(status_codes=DEFAULT_RETRYABLE_STATUS)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times and how patiently to retry."""

    max_attempts: int = 3
    base_delay: float = 1.0  # seconds, doubled after each failed attempt
    max_delay: float = 30.0
    is_retryable: RetryPredicate = field(default_factory=RetryableConditions)

    def delay_for(self, attempt: int) -> float:
        """Delay before the attempt following failed attempt number `attempt`."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


class RetryExecutor:
    """Run an operation until it succeeds, fails fatally, or runs out of attempts."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the executor.

        Args:
            policy: Default policy for calls that don't pass their own
            sleep: Awaitable delay function (injectable for tests)
        """
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy | None = None,
        *,
        description: str = "operation",
    ) -> T:
        """
        Execute an operation with retry.

        Args:
            operation: Zero-argument callable returning an awaitable
            policy: Overrides the executor's default policy
            description: Label used in log events

        Returns:
            The operation's result

        Raises:
            The last error once attempts are exhausted, or the first fatal one
        """
        policy = policy or self.policy
        max_attempts = max(1, policy.max_attempts)

        def log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                "Retrying after transient failure",
                operation=description,
                attempt=retry_state.attempt_number,
                max_attempts=max_attempts,
                delay_s=retry_state.next_action.sleep,
                error=str(retry_state.outcome.exception()),
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            retry=retry_if_exception(policy.is_retryable),
            wait=wait_exponential(multiplier=policy.base_delay, max=policy.max_delay),
            sleep=self._sleep,
            before_sleep=log_retry,
            reraise=True,
        )

        try:
            return await retrying(operation)
        except Exception as e:
            attempts = retrying.statistics.get("attempt_number", 1)
            if policy.is_retryable(e):
                logger.warning(
                    "Retries exhausted",
                    operation=description,
                    attempts=attempts,
                    error=str(e),
                )
            else:
                logger.debug(
                    "Non-retryable failure",
                    operation=description,
                    attempt=attempts,
                    error=str(e),
                )
            raise
