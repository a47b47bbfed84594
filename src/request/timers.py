from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class RequestTimers:
    """
    Delayed callbacks grouped by request id.

    `cancel(request_id)` bumps the request's generation and cancels its
    pending tasks. A callback whose generation is stale when its delay
    elapses is dropped, so a cancelled request can never be touched again
    by work scheduled before the cancellation.
    """

    def __init__(self) -> None:
        self._tasks: dict[UUID, set[asyncio.Task[None]]] = {}
        self._generations: dict[UUID, int] = {}

    def generation(self, request_id: UUID) -> int:
        return self._generations.get(request_id, 0)

    def pending(self, request_id: UUID) -> int:
        return len(self._tasks.get(request_id, ()))

    def schedule(
        self, request_id: UUID, delay: float, callback: TimerCallback
    ) -> asyncio.Task[None]:
        generation = self.generation(request_id)
        task = asyncio.create_task(self._run(request_id, generation, delay, callback))
        tasks = self._tasks.setdefault(request_id, set())
        tasks.add(task)
        task.add_done_callback(lambda t: self._forget(request_id, t))
        return task

    def cancel(self, request_id: UUID) -> int:
        """Invalidate every pending callback of the request.

        The task calling this (if it is one of ours) is left running so it
        can finish the transition that triggered the cancellation.
        """
        self._generations[request_id] = self.generation(request_id) + 1
        current = asyncio.current_task()
        cancelled = 0
        for task in list(self._tasks.get(request_id, ())):
            if task is current or task.done():
                continue
            task.cancel()
            cancelled += 1
        if cancelled:
            logger.debug("Cancelled %d timers for request %s", cancelled, request_id)
        return cancelled

    async def drain(self) -> None:
        """Wait until no timers are pending, including ones scheduled meanwhile."""
        while True:
            tasks = [
                t
                for tasks in self._tasks.values()
                for t in tasks
                if t is not asyncio.current_task()
            ]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(
        self,
        request_id: UUID,
        generation: int,
        delay: float,
        callback: TimerCallback,
    ) -> None:
        await asyncio.sleep(delay)
        if self.generation(request_id) != generation:
            logger.debug("Dropping stale timer for request %s", request_id)
            return
        try:
            await callback()
        except Exception:
            logger.exception("Timer callback failed for request %s", request_id)

    def _forget(self, request_id: UUID, task: asyncio.Task[None]) -> None:
        tasks = self._tasks.get(request_id)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            del self._tasks[request_id]
