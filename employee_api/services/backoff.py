"""
BackoffPolicy - Decides which upstream failures are retried and how long to wait.

Delays grow exponentially from ``initial_delay``, doubling per retry, capped at
``max_backoff``. Each delay is multiplied by a random factor in
``[1 - jitter, 1 + jitter]`` so that clients failing together do not retry
together.
"""

import random
from dataclasses import dataclass
from datetime import timedelta

from employee_api.services.errors import (
    RateLimitError,
    RequestTimeoutError,
    ServiceUnavailableError,
    UpstreamStatusError,
)


@dataclass
class BackoffConfig:
    """Configuration for retry backoff."""

    max_attempts: int = 5  # Total attempts, including the first one
    initial_delay: timedelta = timedelta(milliseconds=500)
    max_backoff: timedelta = timedelta(seconds=10)
    jitter: float = 0.5


class BackoffPolicy:
    """
    Retry policy for a single upstream service.

    Usage:
        policy = BackoffPolicy(BackoffConfig(max_attempts=3))

        for attempt in range(1, policy.max_attempts + 1):
            try:
                return await make_request()
            except Exception as e:
                if not policy.should_retry(e) or not policy.has_attempts_left(attempt):
                    raise
                await asyncio.sleep(policy.delay_for_attempt(attempt))
    """

    def __init__(
        self,
        config: BackoffConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config or BackoffConfig()
        if self.config.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not 0 <= self.config.jitter <= 1:
            raise ValueError("jitter must be between 0 and 1")
        self._rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    @property
    def max_delay(self) -> float:
        return self.config.max_backoff.total_seconds()

    def should_retry(self, error: BaseException) -> bool:
        """Check if a failure is transient: 429, 5xx, connection failure or timeout."""
        if isinstance(error, (RateLimitError, RequestTimeoutError, ServiceUnavailableError)):
            return True
        if isinstance(error, UpstreamStatusError):
            return error.is_server_error
        return False

    def has_attempts_left(self, attempt: int) -> bool:
        """Check if another attempt is allowed after ``attempt`` attempts were made."""
        return attempt < self.config.max_attempts

    def base_delay(self, attempt: int) -> float:
        """Un-jittered delay in seconds before retry number ``attempt`` (1-based)."""
        if attempt < 1:
            raise ValueError("attempt must be at least 1")
        initial = self.config.initial_delay.total_seconds()
        cap = self.max_delay
        # Avoid float overflow for large attempt counts
        exponent = min(attempt - 1, 62)
        return min(initial * (2**exponent), cap)

    def delay_for_attempt(self, attempt: int) -> float:
        """Jittered delay in seconds before retry number ``attempt`` (1-based)."""
        base = self.base_delay(attempt)
        jitter = self.config.jitter
        factor = self._rng.uniform(1 - jitter, 1 + jitter)
        cap = self.max_delay
        return max(0.0, min(base * factor, cap))

    def get_status(self) -> dict[str, float | int]:
        """Get policy settings as dictionary."""
        return {
            "max_attempts": self.config.max_attempts,
            "initial_delay": self.config.initial_delay.total_seconds(),
            "max_backoff": self.config.max_backoff.total_seconds(),
            "jitter": self.config.jitter,
        }
