from __future__ import annotations

from entitylist.core.sorting import collation_key, compare_text, sort_stable
from entitylist.domain.fields import FieldSchema, MappingFieldResolver
from entitylist.domain.models import SortDirection, SortSpec

SCHEMA = FieldSchema.build(
    ("name", "rank", "enabled"),
    storage_namespace="test.sorting",
    boolean_fields=("enabled",),
)
RESOLVER = MappingFieldResolver()


def _names(records):
    return [record["id"] for record in records]


class TestCollation:
    def test_case_and_accent_insensitive(self):
        assert compare_text("École", "ecole") == 0
        assert compare_text("alpha", "BETA") < 0

    def test_digit_runs_compare_numerically(self):
        assert compare_text("Ward 2", "ward 10") < 0
        assert collation_key("room9") < collation_key("room10")

    def test_empty_sorts_first(self):
        assert compare_text("", "a") < 0


class TestSortStable:
    def test_ties_follow_input_order_after_sorting(self):
        records = [{"id": 1, "name": "b"}, {"id": 2, "name": "b"}, {"id": 3, "name": "a"}]
        result = sort_stable(records, SortSpec("name"), RESOLVER, SCHEMA)
        assert _names(result) == [3, 1, 2]

    def test_ties_keep_input_order(self):
        records = [
            {"id": "r3", "name": "Same"},
            {"id": "r1", "name": "same"},
            {"id": "r2", "name": "SAME"},
        ]
        result = sort_stable(records, SortSpec("name"), RESOLVER, SCHEMA)
        assert _names(result) == ["r3", "r1", "r2"]

    def test_descending_keeps_ties_in_input_order(self):
        records = [
            {"id": "a", "name": "Beta"},
            {"id": "b", "name": "alpha"},
            {"id": "c", "name": "beta"},
        ]
        result = sort_stable(records, SortSpec("name", SortDirection.DESC), RESOLVER, SCHEMA)
        assert _names(result) == ["a", "c", "b"]

    def test_numeric_aware_order(self):
        records = [{"id": str(i), "rank": f"Bed {i}"} for i in (10, 2, 1)]
        result = sort_stable(records, SortSpec("rank"), RESOLVER, SCHEMA)
        assert _names(result) == ["1", "2", "10"]

    def test_boolean_field_puts_active_first(self):
        records = [
            {"id": "off", "enabled": "false"},
            {"id": "on", "enabled": "yes"},
        ]
        result = sort_stable(records, SortSpec("enabled"), RESOLVER, SCHEMA)
        assert _names(result) == ["on", "off"]

    def test_unknown_field_falls_back_to_primary(self):
        records = [{"id": "b", "name": "b"}, {"id": "a", "name": "a"}]
        result = sort_stable(records, SortSpec("nope"), RESOLVER, SCHEMA)
        assert _names(result) == ["a", "b"]

    def test_input_is_not_mutated(self):
        records = [{"id": "b", "name": "b"}, {"id": "a", "name": "a"}]
        sort_stable(records, SortSpec("name"), RESOLVER, SCHEMA)
        assert _names(records) == ["b", "a"]
