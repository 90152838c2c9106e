"""
Cooperative cancellation for client calls.

A CancelToken is shared between the caller and a running call. The retry loop
waits on it between attempts, so cancel() (or an expired deadline) ends the
call at the next wait instead of after the full backoff. The transport caps
each request timeout at the time left before the deadline.
"""

import threading
import time

from reve.utils.exceptions import CancellationError, DeadlineExceededError


class CancelToken:
    """Explicit cancel flag with an optional deadline.

    Example:
        token = CancelToken(timeout=60)
        result = client.images.create(params, cancel=token)
        # from another thread / signal handler: token.cancel()
    """

    def __init__(self, timeout: float | None = None) -> None:
        """
        Args:
            timeout: Optional overall budget in seconds, measured from now
        """
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread or a signal handler."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        """Raise CancellationError (or DeadlineExceededError) if the call should stop."""
        if self._event.is_set():
            raise CancellationError("Operation was cancelled.")
        if self.expired:
            raise DeadlineExceededError("Operation deadline exceeded.")

    def wait(self, seconds: float) -> None:
        """Sleep up to seconds; raise as soon as cancellation or the deadline fires."""
        self.raise_if_cancelled()
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            if self._event.wait(remaining):
                raise CancellationError("Operation was cancelled.")
            raise DeadlineExceededError("Operation deadline exceeded.")
        if self._event.wait(seconds):
            raise CancellationError("Operation was cancelled.")
