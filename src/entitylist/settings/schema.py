"""JSON Schema for persisted list preferences and per-field sanitisation."""

from __future__ import annotations

import logging
from typing import Any, Callable

from jsonschema import Draft202012Validator

from ..config import (
    DENSITY_OPTIONS,
    FILTER_LOGICS,
    PAGE_SIZE_OPTIONS,
    PREFERENCES_SCHEMA_ID,
)
from ..domain.fields import FieldSchema
from ..domain.models import (
    ColumnConfig,
    FilterSet,
    Preferences,
    SortDirection,
    SortSpec,
    sanitize_page_size,
)

LOGGER = logging.getLogger(__name__)


def build_preferences_schema(fields: FieldSchema) -> dict[str, Any]:
    """Return the Draft 2020-12 schema describing a stored preference bundle."""

    column_list = {"type": "array", "items": {"type": "string"}}
    return {
        "$id": f"{fields.storage_namespace}/preferences.schema.json",
        "type": "object",
        "properties": {
            "schema": {"const": PREFERENCES_SCHEMA_ID},
            "columnOrder": column_list,
            "visibleColumns": column_list,
            "searchScope": {"enum": list(fields.search_scopes)},
            "filterLogic": {"enum": list(FILTER_LOGICS)},
            "filters": {"type": "array", "items": {"type": "object"}},
            "sortField": {"enum": list(fields.fields)},
            "sortDirection": {"enum": [direction.value for direction in SortDirection]},
            "pageSize": {
                "anyOf": [
                    {"enum": list(PAGE_SIZE_OPTIONS)},
                    {"type": "string", "enum": [str(size) for size in PAGE_SIZE_OPTIONS]},
                ]
            },
            "density": {"enum": list(DENSITY_OPTIONS)},
        },
        "additionalProperties": True,
    }


def _property_validators(schema: dict[str, Any]) -> dict[str, Draft202012Validator]:
    return {
        name: Draft202012Validator(subschema)
        for name, subschema in schema["properties"].items()
    }


def _valid_fields(payload: dict[str, Any], fields: FieldSchema) -> dict[str, Any]:
    """Keep only the properties that validate on their own.

    Each property is checked against its sub-schema in isolation so one
    corrupted value never takes the rest of the bundle down with it.
    """

    validators = _property_validators(build_preferences_schema(fields))
    valid: dict[str, Any] = {}
    for name, validator in validators.items():
        if name not in payload:
            continue
        value = payload[name]
        errors = list(validator.iter_errors(value))
        if errors:
            LOGGER.debug("Discarding stored %s=%r: %s", name, value, errors[0].message)
            continue
        valid[name] = value
    return valid


def sanitize_preferences(
    payload: Any,
    fields: FieldSchema,
    next_filter_id: Callable[[], str],
) -> Preferences:
    """Rebuild a :class:`Preferences` bundle from *payload*.

    Missing or invalid properties fall back to their own defaults; column
    and filter lists are additionally repaired entry by entry.
    """

    defaults = Preferences.default(fields, next_filter_id)
    if not isinstance(payload, dict):
        return defaults
    valid = _valid_fields(payload, fields)

    columns = ColumnConfig.sanitized(
        valid.get("columnOrder", defaults.columns.order),
        valid.get("visibleColumns", sorted(defaults.columns.visible)),
        fields,
    )
    filters = FilterSet.sanitized(
        valid.get("filters"),
        fields,
        next_filter_id,
        logic=valid.get("filterLogic", defaults.filters.logic),
    )
    sort = SortSpec.sanitized(
        valid.get("sortField", defaults.sort.field),
        valid.get("sortDirection", defaults.sort.direction),
        fields,
    )
    return Preferences(
        columns=columns,
        sort=sort,
        filters=filters,
        search_scope=valid.get("searchScope", defaults.search_scope),
        page_size=sanitize_page_size(valid.get("pageSize", defaults.page_size)),
        density=valid.get("density", defaults.density),
    )


def validate_preferences(payload: dict[str, Any], fields: FieldSchema) -> None:
    """Validate a full bundle, raising ``jsonschema.ValidationError`` on failure."""

    Draft202012Validator(build_preferences_schema(fields)).validate(payload)


__all__ = ["build_preferences_schema", "sanitize_preferences", "validate_preferences"]
