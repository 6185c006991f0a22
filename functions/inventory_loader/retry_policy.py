"""
Retry policy for inventory loads.

Bounded attempts with a progressive (linear) delay:
``delay(attempt) = attempt * step`` -> 2s, 4s, ... with the default step.

Every failure consumes an attempt except connectivity failures, which route
to the offline strategy instead.
"""

from dataclasses import dataclass

from .errors import InventoryConnectivityError


@dataclass(frozen=True)
class RetryPolicy:
    """Stateless retry decisions; the attempt counter lives in the coordinator."""
    max_attempts: int = 3
    delay_step_seconds: float = 2.0

    def delay(self, attempt_number: int) -> float:
        """Seconds to wait after failed attempt ``attempt_number`` (1-based)."""
        return attempt_number * self.delay_step_seconds

    def should_retry(self, attempt_number: int) -> bool:
        return attempt_number < self.max_attempts

    @staticmethod
    def consumes_budget(error: BaseException) -> bool:
        return not isinstance(error, InventoryConnectivityError)
