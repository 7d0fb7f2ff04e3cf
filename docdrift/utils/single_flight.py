"""Request de-duplication for async operations"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


class SingleFlight:
    """
    At most one in-flight execution per key.

    Callers that arrive while an operation for the same key is running await
    that operation and receive its result (or its exception). The key is
    released as soon as the operation settles, so the next call starts fresh.
    """

    def __init__(self):
        self._inflight: dict[Hashable, asyncio.Task] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    async def do(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Run factory() under key, or join the execution already running"""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            logger.debug(f"Joining in-flight operation: {key}")

        # shield: one caller being cancelled must not cancel the shared work
        return await asyncio.shield(task)

    def _release(self, key: Hashable, task: asyncio.Task):
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"In-flight operation {key} failed: {task.exception()}")
