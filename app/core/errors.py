"""
Error taxonomy shared by the row store, the repositories and the HTTP layer.

Reads that can degrade (add-on-group resolution while hydrating a menu) log
and substitute a default. Everything else propagates one of these.
"""
from typing import Any, Dict, Optional


class RestaurantDataError(Exception):
    """Base class for every error raised by the data layer."""


class NotFound(RestaurantDataError):
    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


class StoreUnavailable(RestaurantDataError):
    """The row store could not complete a call (driver, network or server failure)."""

    def __init__(self, table: str, operation: str, detail: str = ""):
        self.table = table
        self.operation = operation
        msg = f"{operation} on {table!r} failed"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class ValidationFailure(RestaurantDataError):
    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class PartialWriteFailure(RestaurantDataError):
    """
    A multi-step write or delete stopped part way through.

    ``phase`` is the phase that failed. ``committed`` maps every phase that
    completed before it to whatever that phase wrote or removed. Nothing is
    rolled back.
    """

    def __init__(self, operation: str, phase: str, committed: Optional[Dict[str, Any]] = None):
        self.operation = operation
        self.phase = phase
        self.committed = dict(committed or {})
        done = ", ".join(self.committed) or "nothing"
        super().__init__(f"{operation} failed during {phase!r} (completed: {done})")


class PartialOrderCreation(PartialWriteFailure):
    """The order row exists but its items (or their add-ons) were not all written."""

    def __init__(self, operation: str, phase: str, committed: Optional[Dict[str, Any]] = None):
        super().__init__(operation, phase, committed)
        order = self.committed.get("order") or {}
        self.order_id = order.get("id")


class OrderDeletionFailure(PartialWriteFailure):
    pass
