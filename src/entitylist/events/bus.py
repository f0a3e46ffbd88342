import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Type


@dataclass(kw_only=True)
class Event:
    """Base event class."""
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class Subscription:
    """Handle returned by subscribe(); can be used to unsubscribe."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: Type = Event
    handler: Callable = field(default=lambda e: None)
    active: bool = True

    def cancel(self):
        self.active = False


class EventBus:
    """In-process publish/subscribe hub.

    Plain handlers run inline during :meth:`publish`.  Handlers subscribed with
    ``async_=True`` are coroutine functions; they are scheduled as tasks on the
    running event loop so a slow subscriber never blocks the publisher.
    """

    def __init__(self, logger: logging.Logger = None):
        self._logger = logger or logging.getLogger(__name__)
        self._sync_handlers: Dict[Type[Event], List[Subscription]] = defaultdict(list)
        self._async_handlers: Dict[Type[Event], List[Subscription]] = defaultdict(list)
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, event_type: Type[Event], handler: Callable, async_: bool = False) -> Subscription:
        sub = Subscription(event_type=event_type, handler=handler)
        if async_:
            self._async_handlers[event_type].append(sub)
        else:
            self._sync_handlers[event_type].append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription):
        subscription.active = False
        for store in (self._sync_handlers, self._async_handlers):
            for subs in store.values():
                try:
                    subs.remove(subscription)
                except ValueError:
                    pass

    def publish(self, event: Event):
        event_type = type(event)
        sync_subs = list(self._sync_handlers[event_type])
        async_subs = list(self._async_handlers[event_type])

        for sub in sync_subs:
            if not sub.active:
                continue
            try:
                sub.handler(event)
            except Exception as e:
                self._logger.error("Sync handler failed for %s: %s", event_type.__name__, e)

        if not async_subs:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.warning(
                "No running loop; dropping %d async handler(s) for %s",
                len(async_subs),
                event_type.__name__,
            )
            return
        for sub in async_subs:
            if not sub.active:
                continue
            task = loop.create_task(self._safe_async_call(sub.handler, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def publish_async(self, event: Event) -> None:
        """Run every handler (plain and coroutine) for *event* and wait for them."""
        event_type = type(event)
        subs = list(self._sync_handlers[event_type]) + list(self._async_handlers[event_type])
        awaitables: List[Awaitable] = []
        for sub in subs:
            if not sub.active:
                continue
            awaitables.append(self._safe_async_call(sub.handler, event))
        await asyncio.gather(*awaitables)

    async def _safe_async_call(self, handler, event):
        try:
            result = handler(event)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            self._logger.error("Async handler failed: %s", e)

    async def drain(self) -> None:
        """Wait for every scheduled async handler to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
