from .changes import ChangeEvent, ChangeFeed, ChangeType, Subscription
from .row_store import RowStore

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "ChangeType",
    "Subscription",
    "RowStore",
]
