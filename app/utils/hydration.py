import asyncio
from collections import deque
from typing import AsyncIterator, Awaitable, Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def ordered_window(
    items: Iterable[T],
    fn: Callable[[T], Awaitable[R]],
    limit: int,
) -> AsyncIterator[R]:
    """
    Apply ``fn`` to ``items`` with at most ``limit`` calls in flight and
    yield the results in input order.

    Work only starts as the iterator is consumed. If a call raises, the error
    surfaces when its turn comes; closing the iterator early (or an error)
    cancels whatever is still outstanding.
    """
    source = iter(items)
    pending: deque = deque()

    def _fill() -> None:
        while len(pending) < limit:
            try:
                item = next(source)
            except StopIteration:
                return
            pending.append(asyncio.ensure_future(fn(item)))

    try:
        _fill()
        while pending:
            result = await pending.popleft()
            _fill()
            yield result
    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
