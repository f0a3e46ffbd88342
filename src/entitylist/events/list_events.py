from dataclasses import dataclass, field

from .bus import Event


@dataclass(kw_only=True)
class ListRefreshedEvent(Event):
    namespace: str = ""
    record_count: int = 0


@dataclass(kw_only=True)
class RecordsDeletedEvent(Event):
    namespace: str = ""
    record_ids: list[str] = field(default_factory=list)
    removed_count: int = 0


@dataclass(kw_only=True)
class RecordChangedEvent(Event):
    """Published by form screens after a record was created or updated."""

    namespace: str = ""
    record_id: str = ""
    action: str = "updated"
