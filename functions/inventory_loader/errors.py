"""
Inventory Loader Exceptions
===========================

One base class (``InventoryError``) and one subclass per failure kind.

Propagation rules
-----------------
- ``InventoryQueryError`` / ``InventorySchemaError`` / ``InventoryValidationError``
  are handled inside the strategy chain and trigger the next strategy.
- ``InventoryTimeoutError`` fails the current attempt and is handed to the
  retry policy.
- ``InventoryConnectivityError`` bypasses the retry policy and routes to the
  offline strategy.
- ``InventoryLoadError`` is the only terminal error a caller of
  ``LoadCoordinator.fetch_inventory`` ever sees.
"""

from typing import Optional


class InventoryError(Exception):
    """Base exception for inventory loading."""
    pass


class InventoryConnectivityError(InventoryError):
    """Raised when the data service cannot be reached at all."""
    pass


class InventoryQueryError(InventoryError):
    """Raised when the data service answered a query with an error."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        table: Optional[str] = None,
    ):
        self.status_code = status_code
        self.code = code
        self.table = table
        super().__init__(message)


class InventorySchemaError(InventoryQueryError):
    """Raised when an expected table, view, function or column is absent."""
    pass


class InventoryTimeoutError(InventoryError, TimeoutError):
    """Raised when a load attempt exceeds its allotted window."""

    def __init__(self, timeout_ms: float):
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Inventory loading timeout after {timeout_ms:.0f}ms - "
            "this usually indicates network issues or a slow database response"
        )


class InventoryValidationError(InventoryError):
    """Raised when a returned row cannot be mapped onto the canonical shape."""
    pass


class LoadCancelledError(InventoryError):
    """Raised inside a strategy when its attempt was abandoned by the coordinator."""
    pass


class StrategyExhaustedError(InventoryError):
    """Raised when every strategy in the chain failed for one attempt."""
    pass


class InventoryLoadError(InventoryError):
    """Terminal error: strategy chain and retry budget are both exhausted."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Inventory loading failed after {attempts} attempt(s){detail}")
