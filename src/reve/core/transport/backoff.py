"""Exponential backoff with jitter for the retry loop."""

import random

# Jitter spans +/- this fraction of the un-jittered delay.
JITTER_FRACTION = 0.25


class BackoffPolicy:
    """Randomized exponential delay bounded by min_wait and max_wait.

    The delay before retry ``attempt`` (1-based) is
    ``min_wait * 2 ** (attempt - 1)`` plus uniform jitter of up to +/-25%,
    clamped to max_wait. The low side is not re-clamped, so a jittered delay
    may land slightly under min_wait.
    """

    def __init__(
        self,
        min_wait: float,
        max_wait: float,
        rng: random.Random | None = None,
    ) -> None:
        self.min_wait = min_wait
        self.max_wait = max_wait
        self._rng = rng or random.Random()

    def center(self, attempt: int) -> float:
        """Un-jittered delay for attempt, clamped to max_wait."""
        return min(self.min_wait * 2 ** (attempt - 1), self.max_wait)

    def delay(self, attempt: int) -> float:
        """Seconds to wait before retry number attempt (1 = first retry)."""
        base = self.min_wait * 2 ** (attempt - 1)
        jitter = base * JITTER_FRACTION * (self._rng.random() * 2 - 1)
        return min(base + jitter, self.max_wait)
