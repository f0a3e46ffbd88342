"""Stable, collation-aware ordering of records by one field."""

from __future__ import annotations

import locale
import re
from functools import cmp_to_key
from typing import Any, Sequence

from ..domain.fields import FieldResolver, FieldSchema
from ..domain.models import SortDirection, SortSpec
from ..utils.text import normalize_value, parse_boolean_token, strip_accents

_DIGIT_RUNS = re.compile(r"(\d+)")


def collation_key(value: Any) -> tuple:
    """Case- and accent-insensitive key that orders digit runs numerically.

    ``"Ward 2"`` sorts before ``"ward 10"``.  Text runs go through
    :func:`locale.strxfrm` so the process locale decides letter order.
    """

    text = strip_accents(normalize_value(value)).casefold()
    key = []
    for index, chunk in enumerate(_DIGIT_RUNS.split(text)):
        if not chunk:
            continue
        if index % 2:
            key.append((0, int(chunk), ""))
        else:
            key.append((1, 0, locale.strxfrm(chunk)))
    return tuple(key)


def compare_text(left: Any, right: Any) -> int:
    left_key = collation_key(left)
    right_key = collation_key(right)
    return (left_key > right_key) - (left_key < right_key)


def _sort_value(record: Any, field_name: str, resolver: FieldResolver, schema: FieldSchema) -> Any:
    value = resolver.resolve(record, field_name)
    if schema.is_boolean(field_name):
        # active (0) sorts ahead of inactive (1) in ascending order
        return 0 if parse_boolean_token(value) is True else 1
    return value


def sort_stable(
    records: Sequence[Any],
    sort: SortSpec,
    resolver: FieldResolver,
    schema: FieldSchema,
) -> list[Any]:
    """Return *records* ordered by *sort*; ties keep their input order.

    Each record is decorated with its input index, which serves as the final
    tie-break for both directions.  ``desc`` negates the field comparison
    instead of reversing the output.
    """

    field_name = schema.sanitize_sort_field(sort.field)
    sign = -1 if sort.direction is SortDirection.DESC else 1
    decorated = [
        (index, collation_key(_sort_value(record, field_name, resolver, schema)), record)
        for index, record in enumerate(records)
    ]

    def _compare(left: tuple, right: tuple) -> int:
        result = (left[1] > right[1]) - (left[1] < right[1])
        if result:
            return result * sign
        return left[0] - right[0]

    return [entry[2] for entry in sorted(decorated, key=cmp_to_key(_compare))]
