"""CorrelationRegistry - pending bridge requests keyed by correlation id.

Each registration owns a future and its own deadline timer. Exactly one
of settle / expire / reject wins for a given entry; whichever runs first
removes the entry, so the others find nothing and return False.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any

from .errors import BridgeError, BridgeTimeoutError, DuplicateIdError

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    """An in-flight correlated request awaiting settlement."""

    id: str
    timeout_ms: int
    deadline: float
    future: asyncio.Future = field(repr=False)
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)


class CorrelationRegistry:
    """Tracks in-flight requests and their deadlines."""

    def __init__(self) -> None:
        self._pending: dict[str, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def get(self, request_id: str) -> PendingRequest | None:
        """Look up a pending entry without touching it."""
        return self._pending.get(request_id)

    def register(self, request_id: str, timeout_ms: int) -> asyncio.Future:
        """Register a pending request and start its deadline timer.

        Must be called from within the running event loop.

        Args:
            request_id: Correlation id, unique among live entries
            timeout_ms: Milliseconds until the entry expires

        Returns:
            Future resolved with the reply or failed with BridgeTimeoutError

        Raises:
            DuplicateIdError: If request_id is already pending
        """
        if request_id in self._pending:
            raise DuplicateIdError(
                message=f"duplicate correlation id: {request_id}",
                data={"id": request_id},
            )

        loop = asyncio.get_running_loop()
        delay = timeout_ms / 1000
        entry = PendingRequest(
            id=request_id,
            timeout_ms=timeout_ms,
            deadline=loop.time() + delay,
            future=loop.create_future(),
        )
        entry.timer = loop.call_later(delay, self.expire, request_id)
        self._pending[request_id] = entry
        return entry.future

    def settle(self, request_id: str, result: Any) -> bool:
        """Resolve a pending entry with a reply.

        Unknown ids are ignored: the entry may already have expired.

        Returns:
            True if an entry was resolved
        """
        entry = self._pop(request_id)
        if entry is None:
            return False
        if not entry.future.done():
            entry.future.set_result(result)
        return True

    def expire(self, request_id: str) -> bool:
        """Fail a pending entry with BridgeTimeoutError (timer callback)."""
        entry = self._pop(request_id)
        if entry is None:
            return False
        logger.warning(f"Bridge request {request_id} timed out after {entry.timeout_ms}ms")
        if not entry.future.done():
            entry.future.set_exception(
                BridgeTimeoutError(
                    message=f"bridge request timed out after {entry.timeout_ms}ms",
                    data={"id": request_id, "timeout_ms": entry.timeout_ms},
                )
            )
        return True

    def reject(self, request_id: str, error: BridgeError) -> bool:
        """Fail a single pending entry with error."""
        entry = self._pop(request_id)
        if entry is None:
            return False
        if not entry.future.done():
            entry.future.set_exception(error)
        return True

    def reject_all(self, error: BridgeError) -> int:
        """Fail every pending entry with its own copy of error.

        Returns:
            Number of entries rejected
        """
        count = 0
        for request_id in list(self._pending):
            if self.reject(request_id, replace(error)):
                count += 1
        return count

    def discard(self, request_id: str) -> bool:
        """Drop an entry without settling it (its waiter went away)."""
        return self._pop(request_id) is not None

    def _pop(self, request_id: str) -> PendingRequest | None:
        entry = self._pending.pop(request_id, None)
        if entry is not None and entry.timer is not None:
            entry.timer.cancel()
        return entry
