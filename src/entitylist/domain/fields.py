"""Field allow-lists and record field resolution for one entity list."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from ..config import SEARCH_SCOPE_ALL
from ..utils.text import normalize_value

BOOLEAN_OPERATOR = "is"
TEXT_OPERATORS: tuple[str, ...] = ("contains", "equals", "startsWith")


@dataclass(frozen=True)
class FieldSchema:
    """Immutable description of the columns an entity list works with.

    ``fields`` doubles as the table column set, the filterable fields and the
    sortable fields.  The first field is the primary name-like field used as
    the fallback wherever an unknown field name shows up.  ``operators`` maps
    each field onto its allowed operators, default first; fields missing from
    the mapping get the text operators.
    """

    fields: tuple[str, ...]
    storage_namespace: str
    operators: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    filter_id_prefix: str = "filter"

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError("FieldSchema requires at least one field")
        if len(set(self.fields)) != len(self.fields):
            raise ValueError("FieldSchema fields must be unique")
        resolved = {name: tuple(self.operators.get(name) or TEXT_OPERATORS) for name in self.fields}
        object.__setattr__(self, "operators", resolved)

    @classmethod
    def build(
        cls,
        fields: Iterable[str],
        storage_namespace: str,
        *,
        boolean_fields: Iterable[str] = (),
        filter_id_prefix: str = "filter",
    ) -> "FieldSchema":
        names = tuple(fields)
        flags = set(boolean_fields)
        operators = {
            name: (BOOLEAN_OPERATOR,) if name in flags else TEXT_OPERATORS for name in names
        }
        return cls(
            fields=names,
            storage_namespace=storage_namespace,
            operators=operators,
            filter_id_prefix=filter_id_prefix,
        )

    # -- allow-lists --------------------------------------------------------

    @property
    def primary_field(self) -> str:
        return self.fields[0]

    @property
    def search_scopes(self) -> tuple[str, ...]:
        return (SEARCH_SCOPE_ALL,) + self.fields

    def is_boolean(self, name: str) -> bool:
        return self.operators.get(name) == (BOOLEAN_OPERATOR,)

    # -- sanitisers ---------------------------------------------------------

    def sanitize_field(self, value: Any) -> str:
        return value if value in self.fields else self.primary_field

    def default_operator(self, name: Any) -> str:
        return self.operators[self.sanitize_field(name)][0]

    def sanitize_operator(self, name: Any, operator: Any) -> str:
        allowed = self.operators[self.sanitize_field(name)]
        return operator if operator in allowed else allowed[0]

    def sanitize_sort_field(self, value: Any) -> str:
        return self.sanitize_field(value)

    def sanitize_search_scope(self, value: Any) -> str:
        return value if value in self.search_scopes else SEARCH_SCOPE_ALL

    def _known(self, values: Any) -> list[str]:
        if not isinstance(values, (list, tuple)):
            return []
        known: list[str] = []
        for value in values:
            if value in self.fields and value not in known:
                known.append(value)
        return known

    def sanitize_column_order(self, values: Any) -> tuple[str, ...]:
        """Keep known columns in their stored order and append the missing ones."""
        ordered = self._known(values)
        ordered.extend(name for name in self.fields if name not in ordered)
        return tuple(ordered)

    def sanitize_visible_columns(self, values: Any) -> frozenset[str]:
        known = self._known(values)
        return frozenset(known or self.fields)


class FieldResolver(ABC):
    """Maps ``(record, field)`` onto the display value filters and sorts work on."""

    @abstractmethod
    def resolve(self, record: Any, field_name: str) -> str:
        pass

    def record_id(self, record: Any) -> str:
        return normalize_value(_lookup(record, "id"))

    def owner_id(self, record: Any) -> str:
        """Tenant id owning *record*, used by access-scope checks."""
        return normalize_value(_lookup(record, "tenant_id"))


class MappingFieldResolver(FieldResolver):
    """Resolve fields straight from mapping keys (or attributes)."""

    def __init__(self, aliases: Optional[Mapping[str, str]] = None) -> None:
        self._aliases = dict(aliases or {})

    def resolve(self, record: Any, field_name: str) -> str:
        return normalize_value(_lookup(record, self._aliases.get(field_name, field_name)))


def _lookup(record: Any, key: str) -> Any:
    if record is None:
        return None
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)
