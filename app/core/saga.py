"""
Ordered phase runner for multi-step writes against the row store.

The store gives no multi-table transaction, so every operation that touches
more than one table (or deletes then re-inserts children) runs its steps
through a ``Saga``: phases execute strictly one after another, each phase
result is recorded, and the first failure is reported together with what
already committed. Nothing is compensated.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Type

from app.core.errors import PartialWriteFailure

log = logging.getLogger(__name__)


class Saga:
    def __init__(self, operation: str, failure_cls: Type[PartialWriteFailure] = PartialWriteFailure):
        self.operation = operation
        self.failure_cls = failure_cls
        self.committed: Dict[str, Any] = {}

    async def run(self, phase: str, step: Callable[[], Awaitable[Any]]) -> Any:
        try:
            result = await step()
        except Exception as exc:
            # First phase failed: nothing is partial, keep the original error
            if not self.committed:
                raise
            self._log_abort(phase)
            raise self._failure(phase) from exc

        self.committed[phase] = result
        return result

    def _failure(self, phase: str) -> PartialWriteFailure:
        return self.failure_cls(self.operation, phase, self.committed)

    def _log_abort(self, phase: str) -> None:
        log.error(
            "%s aborted at phase=%s completed=%s",
            self.operation, phase, list(self.committed),
        )
