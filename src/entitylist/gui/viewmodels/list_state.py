"""Read-only view data handed to the rendering layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Notice(Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    QUEUED = "queued"
    ACCESS_DENIED = "accessDenied"


class ItemSource(Enum):
    LIVE = "live"
    CACHE = "cache"
    EMPTY = "empty"


@dataclass(frozen=True)
class ListView:
    """Snapshot of everything a list screen renders for the current page."""

    items: list[Any] = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total_pages: int = 1
    total_count: int = 0
    filtered_count: int = 0
    current_page_ids: tuple[str, ...] = ()
    selected_on_page_count: int = 0
    selected_count: int = 0
    visible_columns: tuple[str, ...] = ()
    has_active_search_or_filter: bool = False
    source: ItemSource = ItemSource.EMPTY

    @property
    def all_page_selected(self) -> bool:
        return bool(self.current_page_ids) and self.selected_on_page_count == len(self.current_page_ids)

    @property
    def has_no_results(self) -> bool:
        """Search/filters hid every record of a non-empty collection."""
        return self.has_active_search_or_filter and self.filtered_count == 0 and self.total_count > 0
