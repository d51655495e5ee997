"""Retry policy for courier dispatch, read from the environment."""

import os
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: the n-th failed attempt waits ``base * factor**(n-1)``.

    ``max_attempts`` counts every attempt, the immediate one included.
    """

    base_seconds: float = 5.0
    factor: float = 2.0
    max_attempts: int = 5
    timeout_seconds: float = 10.0
    poll_seconds: float = 1.0

    def delay_after(self, attempts: int) -> timedelta:
        return timedelta(seconds=self.base_seconds * self.factor ** max(attempts - 1, 0))

    @classmethod
    def from_env(cls) -> "RetryPolicy":
        return cls(
            base_seconds=float(os.environ.get("DISPATCH_RETRY_BASE_SECONDS", 5)),
            factor=float(os.environ.get("DISPATCH_RETRY_FACTOR", 2)),
            max_attempts=int(os.environ.get("DISPATCH_RETRY_MAX_ATTEMPTS", 5)),
            timeout_seconds=float(os.environ.get("DELIVERY_NETWORK_TIMEOUT_SECONDS", 10)),
            poll_seconds=float(os.environ.get("DISPATCH_RETRY_POLL_SECONDS", 1)),
        )
