"""ListController: searchable, filterable, sortable, paginated entity list.

The controller owns the view state of one list screen.  Each user action is
a plain method that mutates that state and then re-derives the visible page
(filter -> sort -> paginate).  Remote listing, deletion and persistence are
awaited coroutines; results that arrive after the controller was disposed or
re-scoped are dropped instead of being committed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional

from entitylist.application.dtos import (
    AccessScope,
    BulkDeleteResult,
    resolve_list_items,
)
from entitylist.application.interfaces import IRecordRemover, IRecordSource
from entitylist.cache.snapshot_store import CacheFallbackStore
from entitylist.config import (
    FETCH_TIMEOUT_SEC,
    MAX_FILTERS,
    NOTICE_DISMISS_SEC,
    SEARCH_SCOPE_ALL,
)
from entitylist.core.filters import matches_filter_set, matches_search
from entitylist.core.pagination import clamp_page, paginate, total_pages
from entitylist.core.sorting import sort_stable
from entitylist.domain.fields import FieldResolver, FieldSchema
from entitylist.domain.models import (
    FilterCriterion,
    FilterIdSequence,
    FilterLogic,
    FilterSet,
    Preferences,
    SortDirection,
    SortSpec,
    sanitize_density,
    sanitize_page_size,
)
from entitylist.errors import (
    FetchError,
    PreferencesValidationError,
    RequestTimeoutError,
    StorageError,
)
from entitylist.errors.handler import ErrorHandler, ErrorSeverity
from entitylist.events.bus import EventBus
from entitylist.events.list_events import (
    ListRefreshedEvent,
    RecordChangedEvent,
    RecordsDeletedEvent,
)
from entitylist.gui.viewmodels.base import BaseViewModel
from entitylist.gui.viewmodels.list_state import ItemSource, ListView, Notice
from entitylist.gui.viewmodels.selection import SelectionCoordinator
from entitylist.gui.viewmodels.signal import ObservableProperty, Signal
from entitylist.settings.store import PreferenceStore
from entitylist.storage.base import KeyValueStorage
from entitylist.utils.text import normalize_value

ACCESS_ERROR_CODES = frozenset({"FORBIDDEN", "UNAUTHORIZED"})


class ListController(BaseViewModel):
    """Client-side list management for one entity collection.

    ``mount()`` restores preferences and the cached snapshot, then fetches.
    Preferences are only written after that first load has finished, and
    from then on every change writes the complete bundle.
    """

    def __init__(
        self,
        fields: FieldSchema,
        resolver: FieldResolver,
        source: IRecordSource,
        storage: KeyValueStorage,
        scope: AccessScope,
        event_bus: EventBus,
        *,
        remover: Optional[IRecordRemover] = None,
        error_handler: Optional[ErrorHandler] = None,
        fetch_timeout: Optional[float] = FETCH_TIMEOUT_SEC,
        notice_timeout: float = NOTICE_DISMISS_SEC,
        delete_concurrency: int = 1,
        is_offline: bool = False,
    ) -> None:
        super().__init__()
        self._fields = fields
        self._resolver = resolver
        self._source = source
        self._remover = remover
        self._storage = storage
        self._event_bus = event_bus
        self._logger = logging.getLogger(__name__)
        self._error_handler = error_handler or ErrorHandler(self._logger, event_bus)
        self._fetch_timeout = fetch_timeout
        self._notice_timeout = notice_timeout
        self._delete_concurrency = delete_concurrency
        self._next_filter_id = FilterIdSequence(fields.filter_id_prefix)
        self._bind_scope(scope)

        defaults = Preferences.default(fields, self._next_filter_id)

        # Observable view state
        self.search_query = ObservableProperty("")
        self.search_scope = ObservableProperty(defaults.search_scope)
        self.filters = ObservableProperty(defaults.filters)
        self.sort_spec = ObservableProperty(defaults.sort)
        self.columns = ObservableProperty(defaults.columns)
        self.page = ObservableProperty(1)
        self.page_size = ObservableProperty(defaults.page_size)
        self.density = ObservableProperty(defaults.density)

        # Observable status
        self.loading = ObservableProperty(False)
        self.error_code = ObservableProperty(None)
        self.notice = ObservableProperty(None)
        self.preferences_loaded = ObservableProperty(False)
        self.is_offline = ObservableProperty(bool(is_offline))

        self.selection = SelectionCoordinator()

        # Signals
        self.view_changed = Signal()
        self.error_occurred = Signal()
        self.bulk_delete_finished = Signal()

        self._live_items: Optional[List[Any]] = None
        self._cached_items: List[Any] = []
        self._items_revision = 0
        self._derived_key: Optional[tuple] = None
        self._derived_items: List[Any] = []
        self._persisted: Optional[Preferences] = None
        self._pending_writes: set[asyncio.Task] = set()
        self._notice_timer: Optional[asyncio.TimerHandle] = None
        self._fetch_generation = 0
        self._session = 0
        self._mounted = False

        self.subscribe_event(event_bus, RecordChangedEvent, self._on_record_changed)

    # ------------------------------------------------------------------
    # Scope and persistence keys
    # ------------------------------------------------------------------
    def _bind_scope(self, scope: AccessScope) -> None:
        self._scope = scope
        storage_scope = scope.storage_scope
        self._preference_store = PreferenceStore(
            self._storage, self._fields, scope.subject_id, storage_scope
        )
        self._cache_store = CacheFallbackStore(
            self._storage, self._fields, scope.subject_id, storage_scope
        )

    @property
    def scope(self) -> AccessScope:
        return self._scope

    @property
    def fields(self) -> FieldSchema:
        return self._fields

    @property
    def preference_key(self) -> str:
        return self._preference_store.key

    @property
    def cache_key(self) -> str:
        return self._cache_store.key

    # ------------------------------------------------------------------
    # Derived data
    # ------------------------------------------------------------------
    @property
    def item_source(self) -> ItemSource:
        if self._live_items is not None:
            return ItemSource.LIVE
        if self.is_offline.value and self._cached_items:
            return ItemSource.CACHE
        return ItemSource.EMPTY

    @property
    def base_items(self) -> List[Any]:
        """Live payload if one ever arrived, else the cache while offline."""
        if self._live_items is not None:
            return self._live_items
        if self.is_offline.value:
            return self._cached_items
        return []

    @property
    def cached_items(self) -> List[Any]:
        return list(self._cached_items)

    @property
    def filter_logic(self) -> FilterLogic:
        return self.filters.value.logic

    @property
    def has_active_search_or_filter(self) -> bool:
        return bool(normalize_value(self.search_query.value)) or bool(self.filters.value.active)

    @property
    def items(self) -> List[Any]:
        """Filtered and sorted records, memoised on the pipeline inputs."""
        key = (
            self._items_revision,
            self.is_offline.value,
            self.search_query.value,
            self.search_scope.value,
            self.filters.value,
            self.sort_spec.value,
        )
        if key != self._derived_key:
            query = normalize_value(self.search_query.value)
            scope = self._fields.sanitize_search_scope(self.search_scope.value)
            filter_set = self.filters.value
            filtered = [
                record
                for record in self.base_items
                if matches_search(record, query, scope, self._resolver, self._fields)
                and matches_filter_set(record, filter_set, self._resolver, self._fields)
            ]
            self._derived_items = sort_stable(
                filtered, self.sort_spec.value, self._resolver, self._fields
            )
            self._derived_key = key
        return self._derived_items

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.items), self.page_size.value)

    @property
    def view(self) -> ListView:
        items = self.items
        page_slice = paginate(items, self.page.value, self.page_size.value)
        page_ids = tuple(
            record_id
            for record_id in (self._resolver.record_id(record) for record in page_slice.items)
            if record_id
        )
        return ListView(
            items=page_slice.items,
            page=page_slice.page,
            page_size=page_slice.page_size,
            total_pages=page_slice.total_pages,
            total_count=len(self.base_items),
            filtered_count=len(items),
            current_page_ids=page_ids,
            selected_on_page_count=self.selection.count_on_page(page_ids),
            selected_count=self.selection.count,
            visible_columns=self.columns.value.visible_in_order,
            has_active_search_or_filter=self.has_active_search_or_filter,
            source=self.item_source,
        )

    @property
    def preferences(self) -> Preferences:
        return Preferences(
            columns=self.columns.value,
            sort=self.sort_spec.value,
            filters=self.filters.value,
            search_scope=self.search_scope.value,
            page_size=self.page_size.value,
            density=self.density.value,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def mount(self) -> None:
        """Restore preferences and the cached snapshot, then fetch."""
        session = self._session
        self.preferences_loaded.value = False
        stored, cached = await asyncio.gather(
            self._preference_store.load(self._next_filter_id),
            self._cache_store.load(),
        )
        if self._is_superseded(session):
            return
        if stored is not None:
            self._apply_preferences(stored)
        self._set_cached_items(cached)
        self.preferences_loaded.value = True
        self._mounted = True
        self._commit()
        await self.refresh()

    async def change_scope(self, scope: AccessScope) -> None:
        """Rebind to *scope*: drop in-flight work, reset state and remount."""
        self._session += 1
        await self.flush()
        self.cancel_tasks()
        self._bind_scope(scope)
        self._mounted = False
        self._live_items = None
        self._cached_items = []
        self._items_revision += 1
        self._persisted = None
        self.loading.value = False
        self.error_code.value = None
        self.selection.clear()
        self.search_query.value = ""
        self._apply_preferences(Preferences.default(self._fields, self._next_filter_id))
        self.page.value = 1
        await self.mount()

    async def flush(self) -> None:
        """Wait for pending preference/cache writes."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    def dispose(self) -> None:
        self._session += 1
        self._cancel_notice_timer()
        super().dispose()

    def _is_superseded(self, session: int) -> bool:
        return self.disposed or session != self._session

    # ------------------------------------------------------------------
    # Remote listing
    # ------------------------------------------------------------------
    async def refresh(self) -> None:
        """Fetch the collection once; a newer fetch supersedes this one."""
        if self.disposed:
            return
        if not self._scope.can_fetch:
            self._logger.debug("Skipping fetch for %s: scope not fetchable", self._fields.storage_namespace)
            return
        if self.is_offline.value:
            self._logger.debug("Skipping fetch for %s: offline", self._fields.storage_namespace)
            return

        self._fetch_generation += 1
        generation = self._fetch_generation
        session = self._session
        self.loading.value = True
        self.error_code.value = None
        try:
            payload = await self._fetch(self._scope.query_params())
        except Exception as exc:
            if self._is_stale_fetch(generation, session):
                return
            self.loading.value = False
            error = exc if isinstance(exc, FetchError) else FetchError("UNKNOWN_ERROR", str(exc))
            self._fail(error)
            return
        if self._is_stale_fetch(generation, session):
            return
        self.loading.value = False
        self._receive(payload)

    async def retry(self) -> None:
        await self.refresh()

    async def _fetch(self, params: dict) -> Any:
        call = self._source.fetch_page(params)
        if self._fetch_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, self._fetch_timeout)
        except asyncio.TimeoutError as exc:
            raise RequestTimeoutError(self._fetch_timeout) from exc

    def _is_stale_fetch(self, generation: int, session: int) -> bool:
        return self._is_superseded(session) or generation != self._fetch_generation

    def _receive(self, payload: Any) -> None:
        records = resolve_list_items(payload)
        if records is None:
            self._logger.warning("Listing for %s carried no records", self._fields.storage_namespace)
            self._commit(persist=False)
            return
        self._live_items = list(records)
        self._set_cached_items(records)
        self._spawn_write(self._save_cache(list(records)))
        self._event_bus.publish(
            ListRefreshedEvent(namespace=self._fields.storage_namespace, record_count=len(records))
        )
        self._commit(persist=False)

    def _fail(self, error: FetchError) -> None:
        self.error_code.value = error.code
        self._error_handler.handle(
            error,
            ErrorSeverity.ERROR,
            context={"namespace": self._fields.storage_namespace, "code": error.code},
        )
        self.error_occurred.emit(error.code)
        if error.code in ACCESS_ERROR_CODES:
            self.show_notice(Notice.ACCESS_DENIED)
        self._commit(persist=False)

    def set_offline(self, offline: bool) -> None:
        """Network status signal; reconnecting triggers a refresh."""
        was_offline = self.is_offline.value
        self.is_offline.value = bool(offline)
        if was_offline and not offline and self._mounted and not self.disposed:
            self.spawn(self.refresh())
        self._commit(persist=False)

    # ------------------------------------------------------------------
    # Search and filters
    # ------------------------------------------------------------------
    def search(self, query: Any) -> None:
        self.search_query.value = "" if query is None else str(query)
        self._restart_browsing()

    def set_search_scope(self, scope: Any) -> None:
        self.search_scope.value = self._fields.sanitize_search_scope(scope)
        self._restart_browsing()

    def set_filter_logic(self, logic: Any) -> None:
        current = self.filters.value
        self.filters.value = FilterSet(criteria=current.criteria, logic=FilterLogic.parse(logic))
        self._restart_browsing()

    def set_filter_field(self, filter_id: str, field_name: Any) -> None:
        name = self._fields.sanitize_field(field_name)
        operator = self._fields.default_operator(name)
        self._update_filter(
            filter_id,
            lambda criterion: FilterCriterion(criterion.id, name, operator, criterion.value),
        )

    def set_filter_operator(self, filter_id: str, operator: Any) -> None:
        self._update_filter(
            filter_id,
            lambda criterion: FilterCriterion(
                criterion.id,
                criterion.field,
                self._fields.sanitize_operator(criterion.field, operator),
                criterion.value,
            ),
        )

    def set_filter_value(self, filter_id: str, value: Any) -> None:
        self._update_filter(
            filter_id,
            lambda criterion: FilterCriterion(
                criterion.id, criterion.field, criterion.operator, normalize_value(value)
            ),
        )

    def add_filter(self) -> Optional[str]:
        """Append an empty filter row; returns its id, or ``None`` at the limit."""
        current = self.filters.value
        new_id = None
        if len(current.criteria) < MAX_FILTERS:
            criterion = FilterCriterion.default(self._fields, self._next_filter_id())
            new_id = criterion.id
            self.filters.value = FilterSet(criteria=current.criteria + (criterion,), logic=current.logic)
        self._restart_browsing()
        return new_id

    def remove_filter(self, filter_id: str) -> None:
        current = self.filters.value
        remaining = tuple(criterion for criterion in current.criteria if criterion.id != filter_id)
        if not remaining:
            remaining = (FilterCriterion.default(self._fields, self._next_filter_id()),)
        self.filters.value = FilterSet(criteria=remaining, logic=current.logic)
        self._restart_browsing()

    def clear_search_and_filters(self) -> None:
        self.search_query.value = ""
        self.search_scope.value = SEARCH_SCOPE_ALL
        self.filters.value = FilterSet.default(self._fields, self._next_filter_id)
        self._restart_browsing()

    def _update_filter(self, filter_id: str, update: Callable[[FilterCriterion], FilterCriterion]) -> None:
        self.filters.value = self.filters.value.replace_criterion(filter_id, update)
        self._restart_browsing()

    # ------------------------------------------------------------------
    # Sorting, paging, layout
    # ------------------------------------------------------------------
    def sort(self, field_name: Any) -> None:
        """Sort by *field_name*; repeating the current field flips the direction."""
        name = self._fields.sanitize_sort_field(field_name)
        current = self.sort_spec.value
        if current.field == name:
            self.sort_spec.value = SortSpec(name, current.direction.flipped())
        else:
            self.sort_spec.value = SortSpec(name, SortDirection.ASC)
        self._restart_browsing()

    def set_sort(self, field_name: Any, direction: Any = SortDirection.ASC) -> None:
        self.sort_spec.value = SortSpec.sanitized(field_name, direction, self._fields)
        self._restart_browsing()

    def set_page(self, page: Any) -> None:
        try:
            number = int(page)
        except (TypeError, ValueError, OverflowError):
            return
        self.page.value = clamp_page(number, self.total_pages)
        self._commit()

    def set_page_size(self, size: Any) -> None:
        self.page_size.value = sanitize_page_size(size)
        self._restart_browsing()

    def set_density(self, density: Any) -> None:
        self.density.value = sanitize_density(density)
        self._commit()

    def toggle_column(self, field_name: str) -> None:
        self.columns.value = self.columns.value.toggled(field_name)
        self._commit()

    def move_column(self, field_name: str, direction: Any) -> None:
        step = -1 if direction in ("left", "up", -1) else 1
        self.columns.value = self.columns.value.moved(field_name, step)
        self._commit()

    def reset_preferences(self) -> None:
        self._apply_preferences(Preferences.default(self._fields, self._next_filter_id))
        self.selection.clear()
        self._restart_browsing()

    def _apply_preferences(self, preferences: Preferences) -> None:
        self._next_filter_id.advance_past(preferences.filters.ids())
        self.columns.value = preferences.columns
        self.sort_spec.value = preferences.sort
        self.filters.value = preferences.filters
        self.search_scope.value = preferences.search_scope
        self.page_size.value = preferences.page_size
        self.density.value = preferences.density

    def _restart_browsing(self) -> None:
        # a new query starts from the first page
        self.page.value = 1
        self._commit()

    # ------------------------------------------------------------------
    # Selection and deletion
    # ------------------------------------------------------------------
    def toggle_selection(self, record_id: Any) -> None:
        normalized = normalize_value(record_id)
        if normalized not in self.selection.selected_ids.value and not any(
            self._resolver.record_id(record) == normalized for record in self.items
        ):
            return
        self.selection.toggle(record_id)
        self._emit_view()

    def toggle_current_page(self, checked: bool) -> None:
        self.selection.toggle_page(self.view.current_page_ids, checked)
        self._emit_view()

    def clear_selection(self) -> None:
        self.selection.clear()
        self._emit_view()

    def resolve_record(self, record_id: Any) -> Optional[Any]:
        normalized = normalize_value(record_id)
        if not normalized:
            return None
        for record in self.base_items:
            if self._resolver.record_id(record) == normalized:
                return record
        return None

    def _can_act_on(self, record_id: str) -> bool:
        record = self.resolve_record(record_id)
        if record is None:
            return True
        return self._scope.can_access(self._resolver.owner_id(record))

    def can_access(self, record_id: Any) -> bool:
        """Check the access scope before a record is opened or edited.

        A denied check posts the ``access_denied`` notice.
        """
        if not normalize_value(record_id):
            return False
        allowed = self._can_act_on(normalize_value(record_id))
        if not allowed:
            self.show_notice(Notice.ACCESS_DENIED)
        return allowed

    async def delete(self, record_id: Any) -> bool:
        """Delete one record after an access check, then refresh."""
        normalized = normalize_value(record_id)
        if not normalized or self._remover is None or not self._scope.can_manage:
            return False
        if not self.can_access(normalized):
            return False
        session = self._session
        try:
            removed = bool(await self._remover.delete_one(normalized))
        except Exception as exc:
            self._logger.warning("Deleting %s failed: %s", normalized, exc)
            return False
        if not removed or self._is_superseded(session):
            return removed
        self.selection.discard(normalized)
        self._announce_deleted([normalized])
        await self.refresh()
        return True

    async def bulk_delete(self) -> BulkDeleteResult:
        """Delete every selected record, tolerating individual failures.

        The selection is cleared afterwards and the list is re-fetched so the
        view reflects the server state, whether or not every removal worked.
        """
        if self._remover is None or not self._scope.can_manage or not self.selection.count:
            return BulkDeleteResult()
        session = self._session
        result = await self.selection.bulk_delete(
            self._remover.delete_one,
            can_act=self._can_act_on,
            max_concurrency=self._delete_concurrency,
        )
        if self._is_superseded(session):
            return result
        self._logger.info(
            "Bulk delete on %s: %d of %d removed",
            self._fields.storage_namespace,
            result.removed_count,
            result.attempted,
        )
        self.selection.clear()
        if result.removed_count:
            self._announce_deleted(result.removed_ids)
        if result.attempted:
            await self.refresh()
        self.bulk_delete_finished.emit(result)
        self._emit_view()
        return result

    def _announce_deleted(self, record_ids: List[str]) -> None:
        self._event_bus.publish(
            RecordsDeletedEvent(
                namespace=self._fields.storage_namespace,
                record_ids=list(record_ids),
                removed_count=len(record_ids),
            )
        )
        self.show_notice(Notice.QUEUED if self.is_offline.value else Notice.DELETED)

    # ------------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------------
    def show_notice(self, notice: Notice) -> None:
        """Post *notice*; it clears itself after the notice timeout."""
        self._cancel_notice_timer()
        self.notice.value = notice
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._notice_timer = loop.call_later(self._notice_timeout, self.dismiss_notice)

    def dismiss_notice(self) -> None:
        self._cancel_notice_timer()
        self.notice.value = None

    def _cancel_notice_timer(self) -> None:
        if self._notice_timer is not None:
            self._notice_timer.cancel()
            self._notice_timer = None

    def _on_record_changed(self, event: RecordChangedEvent) -> None:
        if event.namespace != self._fields.storage_namespace:
            return
        self.show_notice(Notice.CREATED if event.action == "created" else Notice.UPDATED)
        if self._mounted and not self.disposed:
            self.spawn(self.refresh())

    # ------------------------------------------------------------------
    # Derivation and persistence
    # ------------------------------------------------------------------
    def _set_cached_items(self, records: List[Any]) -> None:
        self._cached_items = list(records)
        self._items_revision += 1

    def _commit(self, persist: bool = True) -> None:
        """Clamp the page, prune the selection, persist and notify."""
        items = self.items
        self.page.value = clamp_page(self.page.value, total_pages(len(items), self.page_size.value))
        self.selection.prune(self._resolver.record_id(record) for record in items)
        if persist:
            self._schedule_preference_save()
        self._emit_view()

    def _emit_view(self) -> None:
        if self.view_changed.handler_count:
            self.view_changed.emit(self.view)

    def _schedule_preference_save(self) -> None:
        if not self.preferences_loaded.value or self.disposed:
            return
        preferences = self.preferences
        if preferences == self._persisted:
            return
        self._persisted = preferences
        self._spawn_write(self._save_preferences(preferences))

    def _spawn_write(self, coro) -> None:
        task = self.spawn(coro)
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _save_preferences(self, preferences: Preferences) -> None:
        try:
            await self._preference_store.save(preferences)
        except (StorageError, PreferencesValidationError) as exc:
            self._error_handler.handle(
                exc, ErrorSeverity.WARNING, context={"key": self._preference_store.key}
            )

    async def _save_cache(self, records: List[Any]) -> None:
        try:
            await self._cache_store.save(records)
        except StorageError as exc:
            self._error_handler.handle(exc, ErrorSeverity.WARNING, context={"key": self._cache_store.key})

