"""Fixed-delay retry for AnkiConnect requests.

AnkiConnect is a single local process, so there is no backoff or jitter:
a fixed number of attempts with a fixed pause in between.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import requests
from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from .errors import AnkiResponseError, SyncError

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_DELAY = 0.5  # seconds

RETRYABLE_EXCEPTIONS = (
    requests.RequestException,
    ConnectionError,
    TimeoutError,
    ValueError,  # malformed JSON
    AnkiResponseError,
)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay: float = DEFAULT_DELAY
    sleep: Callable[[float], None] = time.sleep
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__), compare=False)

    def _before_sleep(self, operation_name: str) -> Callable[[RetryCallState], None]:
        def log_retry(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            self.logger.info(
                "%s failed (attempt %d/%d): %s; retrying",
                operation_name,
                state.attempt_number,
                self.max_attempts,
                exc,
            )

        return log_retry

    def call(self, func: Callable[..., T], *args: Any, operation_name: str = "request", **kwargs: Any) -> T:
        """Run ``func`` until it succeeds or attempts run out.

        Raises:
            SyncError: every attempt failed with a retryable error; the
                message names the attempt count and the last error.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.delay),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            sleep=self.sleep,
            before_sleep=self._before_sleep(operation_name),
        )
        try:
            return retrying(func, *args, **kwargs)
        except RetryError as e:
            last = e.last_attempt.exception()
            raise SyncError(
                f"{operation_name}: after {self.max_attempts} attempts: {last}",
                attempts=self.max_attempts,
            ) from last


def no_wait_policy(max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> RetryPolicy:
    """Policy that retries without sleeping."""
    return RetryPolicy(max_attempts=max_attempts, delay=0.0, sleep=lambda _: None)
