"""Cross-page selection tracking and tolerant bulk deletion."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable

from entitylist.application.dtos import BulkDeleteResult
from entitylist.domain.models import unique_ids
from entitylist.gui.viewmodels.signal import ObservableProperty, Signal
from entitylist.utils.text import normalize_value

LOGGER = logging.getLogger(__name__)

DeleteOne = Callable[[str], Awaitable[Any]]


class SelectionCoordinator:
    """Owns the selected id set; selections survive paging.

    ``selected_ids`` is a tuple in selection order so bulk operations run in
    a deterministic sequence.
    """

    def __init__(self) -> None:
        self.selected_ids = ObservableProperty(())
        self.selection_changed = Signal()

    def _commit(self, ids: Iterable[str]) -> None:
        next_ids = tuple(ids)
        if next_ids == self.selected_ids.value:
            return
        self.selected_ids.value = next_ids
        self.selection_changed.emit(next_ids)

    @property
    def count(self) -> int:
        return len(self.selected_ids.value)

    def is_selected(self, record_id: Any) -> bool:
        return normalize_value(record_id) in self.selected_ids.value

    def toggle(self, record_id: Any) -> None:
        normalized = normalize_value(record_id)
        if not normalized:
            return
        current = self.selected_ids.value
        if normalized in current:
            self._commit(value for value in current if value != normalized)
        else:
            self._commit(current + (normalized,))

    def toggle_page(self, page_ids: Iterable[Any], checked: bool) -> None:
        """Union the page ids into the selection, or remove exactly those ids."""
        page = unique_ids(page_ids)
        current = self.selected_ids.value
        if checked:
            self._commit(unique_ids(list(current) + page))
        else:
            on_page = set(page)
            self._commit(value for value in current if value not in on_page)

    def discard(self, record_id: Any) -> None:
        normalized = normalize_value(record_id)
        self._commit(value for value in self.selected_ids.value if value != normalized)

    def clear(self) -> None:
        self._commit(())

    def prune(self, universe_ids: Iterable[Any]) -> None:
        """Drop selected ids that are no longer part of *universe_ids*."""
        available = set(unique_ids(universe_ids))
        self._commit(value for value in self.selected_ids.value if value in available)

    def count_on_page(self, page_ids: Iterable[Any]) -> int:
        selected = set(self.selected_ids.value)
        return sum(1 for value in unique_ids(page_ids) if value in selected)

    async def bulk_delete(
        self,
        delete_one: DeleteOne,
        can_act: Callable[[str], bool] = lambda _id: True,
        max_concurrency: int = 1,
    ) -> BulkDeleteResult:
        """Delete every selected id, continuing past individual failures.

        Ids rejected by *can_act* are skipped and do not count as failures.
        With the default ``max_concurrency`` of 1 the calls run strictly one
        after another in selection order.
        """

        ids = list(self.selected_ids.value)
        result = BulkDeleteResult(requested=len(ids))
        targets = []
        for record_id in ids:
            if can_act(record_id):
                targets.append(record_id)
            else:
                result.skipped_ids.append(record_id)

        async def _attempt(record_id: str) -> bool:
            try:
                return bool(await delete_one(record_id))
            except Exception as exc:
                LOGGER.warning("Deleting %s failed: %s", record_id, exc)
                return False

        if max_concurrency <= 1:
            outcomes = []
            for record_id in targets:
                outcomes.append(await _attempt(record_id))
        else:
            gate = asyncio.Semaphore(max_concurrency)

            async def _bounded(record_id: str) -> bool:
                async with gate:
                    return await _attempt(record_id)

            outcomes = await asyncio.gather(*(_bounded(record_id) for record_id in targets))

        for record_id, removed in zip(targets, outcomes):
            if removed:
                result.removed_ids.append(record_id)
            else:
                result.failed_ids.append(record_id)
        result.removed_count = len(result.removed_ids)
        return result
