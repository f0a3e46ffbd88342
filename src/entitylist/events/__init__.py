from .bus import Event, EventBus, Subscription
from .list_events import (
    ListRefreshedEvent,
    RecordChangedEvent,
    RecordsDeletedEvent,
)

__all__ = [
    "Event",
    "EventBus",
    "ListRefreshedEvent",
    "RecordChangedEvent",
    "RecordsDeletedEvent",
    "Subscription",
]
