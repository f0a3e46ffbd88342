"""Ward list: field schema and display-value resolution for ward records.

Ward payloads name their tenant and facility inconsistently (``tenant_name``,
a nested ``tenant`` object, a ``tenant_label``...).  When none of those is
present the label is looked up by id in maps built from the tenant and
facility listings.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional

from ..utils.text import humanize_identifier, normalize_value, parse_boolean_token
from .fields import FieldResolver, FieldSchema

WARD_SCHEMA = FieldSchema.build(
    ("name", "tenant", "facility", "type", "active"),
    storage_namespace="hms.settings.wards.list",
    boolean_fields=("active",),
    filter_id_prefix="ward-filter",
)


def build_label_map(
    records: Iterable[Any],
    label_of: Callable[[Mapping[str, Any]], Any],
) -> dict[str, str]:
    """Map record id -> humanised label, skipping rows missing either."""
    labels: dict[str, str] = {}
    for record in records:
        if not isinstance(record, Mapping):
            continue
        record_id = normalize_value(record.get("id"))
        label = humanize_identifier(label_of(record))
        if record_id and label:
            labels[record_id] = label
    return labels


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _nested_name(record: Mapping[str, Any], key: str) -> Any:
    nested = record.get(key)
    return nested.get("name") if isinstance(nested, Mapping) else None


class WardFieldResolver(FieldResolver):
    def __init__(
        self,
        tenant_labels: Optional[Mapping[str, str]] = None,
        facility_labels: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._tenant_labels = dict(tenant_labels or {})
        self._facility_labels = dict(facility_labels or {})

    @classmethod
    def from_listings(
        cls,
        tenants: Iterable[Any] = (),
        facilities: Iterable[Any] = (),
    ) -> "WardFieldResolver":
        by_name_or_slug = lambda record: _first_present(record.get("name"), record.get("slug"))
        return cls(
            tenant_labels=build_label_map(tenants, by_name_or_slug),
            facility_labels=build_label_map(facilities, by_name_or_slug),
        )

    def resolve(self, record: Any, field_name: str) -> str:
        if not isinstance(record, Mapping):
            return ""
        if field_name == "name":
            return humanize_identifier(record.get("name"))
        if field_name == "tenant":
            return self._lookup(
                _first_present(record.get("tenant_name"), _nested_name(record, "tenant"), record.get("tenant_label")),
                record.get("tenant_id"),
                self._tenant_labels,
            )
        if field_name == "facility":
            return self._lookup(
                _first_present(record.get("facility_name"), _nested_name(record, "facility"), record.get("facility_label")),
                record.get("facility_id"),
                self._facility_labels,
            )
        if field_name == "type":
            return humanize_identifier(_first_present(record.get("ward_type"), record.get("type")))
        if field_name == "active":
            return "active" if parse_boolean_token(record.get("is_active")) is True else "inactive"
        return ""

    @staticmethod
    def _lookup(direct: Any, record_id: Any, labels: Mapping[str, str]) -> str:
        label = humanize_identifier(direct)
        if label:
            return label
        normalized = normalize_value(record_id)
        if not normalized:
            return ""
        return normalize_value(labels.get(normalized))
