"""Value objects describing the view configuration of an entity list."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional

from ..config import (
    DEFAULT_DENSITY,
    DEFAULT_PAGE_SIZE,
    DENSITY_OPTIONS,
    MAX_FILTERS,
    PAGE_SIZE_OPTIONS,
    PREFERENCES_SCHEMA_ID,
    SEARCH_SCOPE_ALL,
)
from ..utils.text import normalize_value
from .fields import FieldSchema


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Any) -> "SortDirection":
        if isinstance(value, cls):
            return value
        return cls.DESC if value == cls.DESC.value else cls.ASC

    def flipped(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class FilterLogic(Enum):
    AND = "AND"
    OR = "OR"

    @classmethod
    def parse(cls, value: Any) -> "FilterLogic":
        if isinstance(value, cls):
            return value
        return cls.OR if value == cls.OR.value else cls.AND


class FilterIdSequence:
    """Hands out ``<prefix>-<n>`` ids for new filter rows."""

    def __init__(self, prefix: str, start: int = 1) -> None:
        self._prefix = prefix
        self._next = start

    def __call__(self) -> str:
        value = self._next
        self._next += 1
        return f"{self._prefix}-{value}"

    def advance_past(self, ids: Iterable[str]) -> None:
        """Skip every number already used by *ids* carrying this prefix."""
        marker = f"{self._prefix}-"
        for filter_id in ids:
            suffix = filter_id[len(marker):] if filter_id.startswith(marker) else ""
            if suffix.isdigit():
                self._next = max(self._next, int(suffix) + 1)


@dataclass(frozen=True)
class FilterCriterion:
    id: str
    field: str
    operator: str
    value: str = ""

    @property
    def is_active(self) -> bool:
        return bool(self.value)

    @classmethod
    def default(cls, schema: FieldSchema, filter_id: str) -> "FilterCriterion":
        name = schema.primary_field
        return cls(id=filter_id, field=name, operator=schema.default_operator(name), value="")

    @classmethod
    def sanitized(
        cls, raw: Any, schema: FieldSchema, next_id: Callable[[], str]
    ) -> "FilterCriterion":
        """Coerce a stored or user-supplied row onto the field allow-lists."""
        get = raw.get if isinstance(raw, Mapping) else (lambda _key: None)
        name = schema.sanitize_field(get("field"))
        return cls(
            id=normalize_value(get("id")) or next_id(),
            field=name,
            operator=schema.sanitize_operator(name, get("operator")),
            value=normalize_value(get("value")),
        )

    def to_payload(self) -> dict[str, str]:
        return {"id": self.id, "field": self.field, "operator": self.operator, "value": self.value}


@dataclass(frozen=True)
class FilterSet:
    """Up to ``MAX_FILTERS`` criteria combined with AND / OR.

    Never empty: an empty input collapses to a single inert default row.
    """

    criteria: tuple[FilterCriterion, ...]
    logic: FilterLogic = FilterLogic.AND

    @classmethod
    def default(cls, schema: FieldSchema, next_id: Callable[[], str]) -> "FilterSet":
        return cls(criteria=(FilterCriterion.default(schema, next_id()),))

    @classmethod
    def sanitized(
        cls,
        values: Any,
        schema: FieldSchema,
        next_id: Callable[[], str],
        logic: Any = FilterLogic.AND,
    ) -> "FilterSet":
        rows: list[FilterCriterion] = []
        if isinstance(values, (list, tuple)):
            rows = [FilterCriterion.sanitized(raw, schema, next_id) for raw in values]
        taken = {row.id for row in rows}
        seen: set[str] = set()
        for index, row in enumerate(rows):
            # repeated ids would make edits hit several rows
            if row.id in seen:
                fresh = next_id()
                while fresh in taken:
                    fresh = next_id()
                taken.add(fresh)
                rows[index] = replace(row, id=fresh)
            seen.add(rows[index].id)
        if not rows:
            rows = [FilterCriterion.default(schema, next_id())]
        return cls(criteria=tuple(rows[:MAX_FILTERS]), logic=FilterLogic.parse(logic))

    @property
    def active(self) -> tuple[FilterCriterion, ...]:
        return tuple(criterion for criterion in self.criteria if criterion.is_active)

    def ids(self) -> list[str]:
        return [criterion.id for criterion in self.criteria]

    def replace_criterion(
        self, filter_id: str, update: Callable[[FilterCriterion], FilterCriterion]
    ) -> "FilterSet":
        return replace(
            self,
            criteria=tuple(
                update(criterion) if criterion.id == filter_id else criterion
                for criterion in self.criteria
            ),
        )


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def sanitized(cls, name: Any, direction: Any, schema: FieldSchema) -> "SortSpec":
        return cls(field=schema.sanitize_sort_field(name), direction=SortDirection.parse(direction))


@dataclass(frozen=True)
class ColumnConfig:
    """Column order (a permutation of every field) plus the visible subset."""

    order: tuple[str, ...]
    visible: frozenset[str]

    @classmethod
    def default(cls, schema: FieldSchema) -> "ColumnConfig":
        return cls(order=schema.fields, visible=frozenset(schema.fields))

    @classmethod
    def sanitized(cls, order: Any, visible: Any, schema: FieldSchema) -> "ColumnConfig":
        return cls(
            order=schema.sanitize_column_order(order),
            visible=schema.sanitize_visible_columns(visible),
        )

    @property
    def visible_in_order(self) -> tuple[str, ...]:
        return tuple(name for name in self.order if name in self.visible)

    def toggled(self, name: str) -> "ColumnConfig":
        if name not in self.order:
            return self
        if name in self.visible:
            if len(self.visible) == 1:
                return self
            return replace(self, visible=self.visible - {name})
        return replace(self, visible=self.visible | {name})

    def moved(self, name: str, step: int) -> "ColumnConfig":
        if name not in self.order:
            return self
        index = self.order.index(name)
        target = index + step
        if target < 0 or target >= len(self.order):
            return self
        order = list(self.order)
        order.insert(target, order.pop(index))
        return replace(self, order=tuple(order))


@dataclass(frozen=True)
class Preferences:
    """The persisted view configuration bundle."""

    columns: ColumnConfig
    sort: SortSpec
    filters: FilterSet
    search_scope: str = SEARCH_SCOPE_ALL
    page_size: int = DEFAULT_PAGE_SIZE
    density: str = DEFAULT_DENSITY

    @classmethod
    def default(
        cls, schema: FieldSchema, next_id: Optional[Callable[[], str]] = None
    ) -> "Preferences":
        next_id = next_id or FilterIdSequence(schema.filter_id_prefix)
        return cls(
            columns=ColumnConfig.default(schema),
            sort=SortSpec(field=schema.primary_field),
            filters=FilterSet.default(schema, next_id),
        )

    def to_payload(self, schema: FieldSchema) -> dict[str, Any]:
        return {
            "schema": PREFERENCES_SCHEMA_ID,
            "columnOrder": list(self.columns.order),
            "visibleColumns": [name for name in schema.fields if name in self.columns.visible],
            "searchScope": self.search_scope,
            "filterLogic": self.filters.logic.value,
            "filters": [criterion.to_payload() for criterion in self.filters.criteria],
            "sortField": self.sort.field,
            "sortDirection": self.sort.direction.value,
            "pageSize": self.page_size,
            "density": self.density,
        }


def unique_ids(values: Iterable[Any]) -> list[str]:
    """Normalise *values* to non-empty ids, dropping duplicates in order."""
    normalized = (normalize_value(value) for value in values)
    return list(dict.fromkeys(value for value in normalized if value))


def sanitize_page_size(value: Any) -> int:
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, bool) or value not in PAGE_SIZE_OPTIONS:
        return DEFAULT_PAGE_SIZE
    return int(value)


def sanitize_density(value: Any) -> str:
    return value if value in DENSITY_OPTIONS else DEFAULT_DENSITY
