"""
Retry loop with exponential backoff.

One generic Retrier serves both JSON and raw calls: it runs an attempt
function up to max_retries + 1 times and only retries APIErrors whose status
is retryable. Every other failure (RequestError, unexpected exceptions) ends
the call immediately.
"""

import time
from collections.abc import Callable
from typing import TypeVar

from reve.core.transport.backoff import BackoffPolicy
from reve.core.transport.cancel import CancelToken
from reve.logging_config import get_logger
from reve.utils.exceptions import APIError

logger = get_logger(__name__)

T = TypeVar("T")


def should_retry(error: BaseException) -> bool:
    """Only API errors with a retryable status are retried."""
    return isinstance(error, APIError) and error.retryable


class Retrier:
    """Runs an attempt function with bounded retries and cancellable backoff."""

    def __init__(
        self,
        max_retries: int,
        backoff: BackoffPolicy,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_retries = max_retries
        self.backoff = backoff
        self._sleep = sleep

    def _wait(self, attempt: int, cancel: CancelToken | None) -> None:
        delay = self.backoff.delay(attempt)
        logger.debug("Retrying in %.2fs (retry %d/%d)", delay, attempt, self.max_retries)
        if cancel is not None:
            cancel.wait(delay)
        else:
            self._sleep(delay)

    def run(self, fn: Callable[[], T], cancel: CancelToken | None = None) -> T:
        """
        Call fn until it succeeds, fails non-retryably, or the budget runs out.

        Args:
            fn: One attempt; returns the response or raises
            cancel: Optional token; cancellation aborts the backoff wait

        Returns:
            The first successful result of fn

        Raises:
            CancellationError: If cancel fired before or during a wait
            APIError | RequestError: The error that ended the call (the last
                one seen when retries are exhausted)
        """
        attempt = 0
        while True:
            if attempt > 0:
                self._wait(attempt, cancel)
            elif cancel is not None:
                cancel.raise_if_cancelled()

            try:
                return fn()
            except Exception as e:
                if not should_retry(e):
                    raise
                if cancel is not None:
                    cancel.raise_if_cancelled()
                if attempt >= self.max_retries:
                    logger.info("Giving up after %d attempts: %s", attempt + 1, e)
                    raise
                logger.debug("Attempt %d failed with retryable error: %s", attempt + 1, e)
            attempt += 1
