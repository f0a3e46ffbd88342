"""Record predicates: per-field filter criteria and free-text search.

Criteria with an empty value always match, so a list screen can render a
fixed number of filter rows and only the filled-in ones narrow the result.
Field/operator combinations are sanitised when a criterion is written (see
:class:`~entitylist.domain.models.FilterCriterion`); evaluation here trusts
them.
"""

from __future__ import annotations

from typing import Any

from ..config import SEARCH_SCOPE_ALL
from ..domain.fields import BOOLEAN_OPERATOR, FieldResolver, FieldSchema
from ..domain.models import FilterCriterion, FilterLogic, FilterSet
from ..utils.text import normalize_lower, parse_boolean_token


def matches_text(field_value: str, operator: str, needle: str) -> bool:
    """Compare case-folded *field_value* with the case-folded *needle*."""
    if not needle:
        return True
    haystack = normalize_lower(field_value)
    if operator == "equals":
        return haystack == needle
    if operator == "startsWith":
        return haystack.startswith(needle)
    return needle in haystack


def matches_boolean(field_value: str, operator: str, needle: str) -> bool:
    if operator != BOOLEAN_OPERATOR or not needle:
        return True
    wanted = parse_boolean_token(needle)
    if wanted is None:
        return False
    return (parse_boolean_token(field_value) is True) == wanted


def matches_criterion(
    record: Any,
    criterion: FilterCriterion,
    resolver: FieldResolver,
    schema: FieldSchema,
) -> bool:
    needle = normalize_lower(criterion.value)
    if not needle:
        return True
    field_value = resolver.resolve(record, criterion.field)
    if schema.is_boolean(criterion.field):
        return matches_boolean(field_value, criterion.operator, needle)
    return matches_text(field_value, criterion.operator, needle)


def matches_filter_set(
    record: Any,
    filter_set: FilterSet,
    resolver: FieldResolver,
    schema: FieldSchema,
) -> bool:
    active = filter_set.active
    if not active:
        return True
    results = (matches_criterion(record, criterion, resolver, schema) for criterion in active)
    if filter_set.logic is FilterLogic.OR:
        return any(results)
    return all(results)


def matches_search(
    record: Any,
    query: str,
    scope: str,
    resolver: FieldResolver,
    schema: FieldSchema,
) -> bool:
    """Free-text search over every field (``scope == "all"``) or one field."""
    needle = normalize_lower(query)
    if not needle:
        return True
    if scope == SEARCH_SCOPE_ALL:
        fields = schema.fields
    else:
        fields = (schema.sanitize_field(scope),)
    return any(needle in normalize_lower(resolver.resolve(record, name)) for name in fields)
