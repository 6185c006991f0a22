"""
Helper utilities for the inventory loader.
Includes trace IDs, timing and cooperative cancellation.
"""

import time
import uuid
import threading
import logging
from typing import Any, Dict, Optional

from .errors import LoadCancelledError

logger = logging.getLogger(__name__)


def generate_trace_id() -> str:
    """Generate a unique trace ID for correlation across log lines."""
    return f"trace-{uuid.uuid4().hex[:12]}"


def elapsed_ms(started: float, now: Optional[float] = None) -> float:
    """Milliseconds since ``started`` (a ``time.perf_counter()`` value)."""
    end = time.perf_counter() if now is None else now
    return round((end - started) * 1000.0, 2)


def describe_profile(profile: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Reduce a user profile to the fields worth logging."""
    if not profile:
        return None
    return {
        "id": profile.get("id"),
        "role": profile.get("role") or profile.get("account_type"),
    }


class CancelToken:
    """
    Cooperative cancellation flag shared by one load attempt.

    The coordinator cancels the token when it stops waiting for an attempt;
    the data client checks it before issuing each request.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise LoadCancelledError(f"Load attempt abandoned: {self.reason}")
