"""In-flight request deduplication."""

import asyncio
from collections.abc import Awaitable
from collections.abc import Callable
from functools import partial
from logging import getLogger
from typing import Any
from typing import TypeVar

T = TypeVar("T")

logger = getLogger(__name__)


class RequestDeduplicator:
    """Share one in-flight computation between callers asking for the same key.

    A registration lives only while its task is running; once the task
    settles, the next call for the key computes again. This is not a result
    cache.
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Future[Any]] = {}
        # Bumped by clear(); work started under an older generation is stale.
        self.generation = 0

    async def dedupe(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        """Run ``compute`` once for all concurrent callers of ``key``.

        Args:
            key: Identity of the logical request
            compute: Zero-argument callable returning an awaitable

        Returns:
            The result of the shared computation

        Raises:
            Whatever ``compute`` raises, re-raised to every sharing caller
        """
        # Lookup and registration happen without an await in between.
        future = self._pending.get(key)
        if future is not None:
            logger.debug("Joining in-flight request: %s", key)
        else:
            logger.debug("New request: %s", key)
            future = asyncio.ensure_future(compute())
            self._pending[key] = future
            future.add_done_callback(partial(self._release, key))
        return await asyncio.shield(future)

    def _release(self, key: str, future: asyncio.Future[Any]) -> None:
        if not future.cancelled():
            # every waiter may have been cancelled; mark the outcome as seen
            future.exception()
        # clear() may have dropped this future and a newer one taken its key
        if self._pending.get(key) is future:
            del self._pending[key]

    def clear(self) -> int:
        """Drop all pending registrations without cancelling running work."""
        cleared = len(self._pending)
        self._pending.clear()
        self.generation += 1
        if cleared:
            logger.info("Dropped %d pending request registrations", cleared)
        return cleared

    def pending_keys(self) -> list[str]:
        return list(self._pending.keys())

    def stats(self) -> dict[str, Any]:
        return {"size": len(self._pending), "keys": self.pending_keys()}

    def __len__(self) -> int:
        return len(self._pending)
