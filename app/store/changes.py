"""
Change-notification channel.

The row store publishes one ``ChangeEvent`` per written row. Subscribers
register a table plus an equality filter and receive matching events through
their own queue and delivery task, so a slow or failing handler never blocks
the writer or other subscribers. There is no replay: a subscription only sees
events published while it is open.
"""
import asyncio
import enum
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

log = logging.getLogger(__name__)


class ChangeType(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    type: ChangeType
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None
    committed_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def record(self) -> Dict[str, Any]:
        """The row the event is about: the new image, or the old one for deletes."""
        return self.new if self.new is not None else (self.old or {})

    def matches(self, table: str, filters: Dict[str, Any]) -> bool:
        if self.table != table:
            return False
        row = self.record
        return all(row.get(column) == value for column, value in filters.items())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "type": self.type.value,
            "new": self.new,
            "old": self.old,
            "committed_at": self.committed_at,
        }


ChangeHandler = Callable[[ChangeEvent], Any]


class Subscription:
    """Handle returned by ``ChangeFeed.subscribe``; call ``unsubscribe`` to stop delivery."""

    def __init__(
        self,
        feed: "ChangeFeed",
        table: str,
        filters: Dict[str, Any],
        handler: ChangeHandler,
        events: Iterable[ChangeType],
    ):
        self.table = table
        self.filters = dict(filters)
        self.events = frozenset(events)
        self.closed = False
        self._feed = feed
        self._handler = handler
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task = asyncio.get_running_loop().create_task(self._deliver())

    def offer(self, event: ChangeEvent) -> None:
        if self.closed or event.type not in self.events:
            return
        if event.matches(self.table, self.filters):
            self._queue.put_nowait(event)

    def unsubscribe(self) -> None:
        """
        Stop delivery. Returns immediately; no event offered afterwards is
        delivered. A handler call already in progress runs to completion.
        """
        if self.closed:
            return
        self.closed = True
        self._feed._remove(self)
        self._queue.put_nowait(None)  # wake the delivery loop so it can exit

    async def join(self) -> None:
        """Wait until every queued event has been handled (or dropped)."""
        await self._queue.join()

    async def wait_closed(self) -> None:
        await self._task

    async def _deliver(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                if event is None:
                    return
                if self.closed:
                    continue
                result = self._handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                log.warning(
                    "change handler failed: table=%s type=%s filters=%s",
                    self.table, getattr(event, "type", None), self.filters,
                    exc_info=True,
                )
            finally:
                self._queue.task_done()


class ChangeFeed:
    def __init__(self):
        self._subscriptions: List[Subscription] = []

    def subscribe(
        self,
        table: str,
        filters: Optional[Dict[str, Any]],
        handler: ChangeHandler,
        events: Iterable[ChangeType] = tuple(ChangeType),
    ) -> Subscription:
        """Must be called from a running event loop; delivery happens on that loop."""
        sub = Subscription(self, table, filters or {}, handler, events)
        self._subscriptions.append(sub)
        log.info("subscribed: table=%s filters=%s", table, sub.filters)
        return sub

    def publish(self, event: ChangeEvent) -> None:
        for sub in list(self._subscriptions):
            sub.offer(event)

    def close(self) -> None:
        for sub in list(self._subscriptions):
            sub.unsubscribe()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def _remove(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)
