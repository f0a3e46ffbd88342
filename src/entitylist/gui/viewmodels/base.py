"""BaseViewModel: event subscriptions and owned background tasks.

Everything registered here is torn down by ``dispose()``: bus subscriptions
are cancelled and still-running tasks are cancelled, so a late result can
never land in a disposed view model.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Coroutine, Type

from entitylist.events.bus import EventBus, Subscription

_logger = logging.getLogger(__name__)


class BaseViewModel:
    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._tasks: set[asyncio.Task] = set()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe_event(
        self,
        event_bus: EventBus,
        event_type: Type,
        handler: Callable,
    ) -> Subscription:
        """Subscribe to an event type and track the subscription."""
        sub = event_bus.subscribe(event_type, handler)
        self._subscriptions.append(sub)
        return sub

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        """Run *coro* on the current loop as a task owned by this view model."""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Background task %r failed: %s", task.get_name(), exc)

    async def wait_idle(self) -> None:
        """Wait until every owned task, including ones spawned meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_tasks(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    def dispose(self) -> None:
        """Cancel all tracked event subscriptions and owned tasks."""
        self._disposed = True
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions.clear()
        self.cancel_tasks()
