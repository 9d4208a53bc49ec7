"""Unit tests for field value resolution."""
from datetime import date, timedelta

import pytest

from messagelab.core.fields import create_field_setting
from messagelab.core.models import FieldKind, FieldMode, ListScope, LoopSetting, Relation
from messagelab.core.relations import relation_id
from messagelab.exceptions import UniqueValuesExhaustedError
from messagelab.generators.value_resolver import (
    TOKEN_ALPHABET,
    ValueResolver,
    format_number,
)


def _field(field_id, value, kind=None, **settings):
    return create_field_setting(field_id, value, kind).model_copy(update=settings)


def _relation(master, dependent, **settings):
    rel = Relation(id=relation_id(master, dependent), master_id=master, dependent_id=dependent)
    return rel.model_copy(update=settings)


def _resolve(resolver, field_id, file_index=0, loop_indices=None, cache=None):
    return resolver.resolve(field_id, file_index, loop_indices or {}, {} if cache is None else cache)


class TestFormatNumber:
    """Test numeric output formatting."""

    @pytest.mark.parametrize("value,expected", [
        (15.0, "15"),
        (-3.0, "-3"),
        (2.5, "2.5"),
        (0.1 + 0.2, "0.3"),
    ])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected


class TestSimpleModes:
    """Test same, fixed and null resolution."""

    def test_same_mode_is_deterministic(self):
        resolver = ValueResolver([_field("a/x", "hello")], [], [])
        assert {_resolve(resolver, "a/x", i) for i in range(5)} == {"hello"}

    def test_fixed_mode(self):
        resolver = ValueResolver([_field("a/x", "hello", mode=FieldMode.FIXED, fixed_value="bye")], [], [])
        assert _resolve(resolver, "a/x", 3) == "bye"

    def test_null_field_resolves_to_none(self):
        resolver = ValueResolver([_field("root/n", "null", FieldKind.NULL)], [], [])
        assert _resolve(resolver, "root/n") is None

    def test_boolean_modes(self):
        resolver = ValueResolver([
            _field("root/a", "TRUE", FieldKind.BOOLEAN),
            _field("root/b", "true", FieldKind.BOOLEAN, mode=FieldMode.FIXED, fixed_value="no"),
            _field("root/c", "true", FieldKind.BOOLEAN, mode=FieldMode.RANDOM),
        ], [], [], seed=7)
        assert _resolve(resolver, "root/a") == "true"
        assert _resolve(resolver, "root/b") == "false"
        assert {_resolve(resolver, "root/c", i) for i in range(40)} <= {"true", "false"}

    def test_unknown_field_raises(self):
        resolver = ValueResolver([], [], [])
        with pytest.raises(KeyError):
            _resolve(resolver, "nope")

    def test_marker_insensitive_lookup(self):
        resolver = ValueResolver([_field("a/items/item[]/x", "v")], [], [])
        assert resolver.field_for("a/items/item/x").id == "a/items/item[]/x"


class TestIncrement:
    """Test increment mode."""

    def test_number_increment_per_file(self):
        resolver = ValueResolver([_field("a/n", "10", mode=FieldMode.INCREMENT, step=5)], [], [])
        assert [_resolve(resolver, "a/n", i) for i in range(3)] == ["10", "15", "20"]

    def test_loop_indices_add_to_offset(self):
        resolver = ValueResolver(
            [_field("a/item[]/n", "1", mode=FieldMode.INCREMENT)],
            [LoopSetting(id="a/item", label="a/item", count=3)],
            [],
        )
        assert _resolve(resolver, "a/item[]/n", 2, {"a/item": 1}) == "4"

    def test_fractional_step(self):
        resolver = ValueResolver([_field("a/n", "1.5", mode=FieldMode.INCREMENT, step=0.25)], [], [])
        assert _resolve(resolver, "a/n", 2) == "2"
        assert _resolve(resolver, "a/n", 1) == "1.75"

    def test_date_increment(self):
        resolver = ValueResolver([_field("a/d", "2024-01-30", mode=FieldMode.INCREMENT, step=2)], [], [])
        assert _resolve(resolver, "a/d", 1) == "2024-02-01"

    def test_date_with_unparseable_base_uses_today(self):
        field = _field("a/d", "2024-01-15", mode=FieldMode.INCREMENT).model_copy(update={"value": "soon"})
        resolver = ValueResolver([field], [], [])
        assert _resolve(resolver, "a/d", 1) == (date.today() + timedelta(days=1)).isoformat()

    def test_text_increment_keeps_value(self):
        resolver = ValueResolver([_field("a/t", "abc", mode=FieldMode.INCREMENT)], [], [])
        assert _resolve(resolver, "a/t", 4) == "abc"


class TestRandom:
    """Test random mode and uniqueness."""

    def test_number_with_length_gives_digits(self):
        resolver = ValueResolver([_field("a/n", "1", mode=FieldMode.RANDOM, length=5)], [], [], seed=1)
        values = [_resolve(resolver, "a/n", i) for i in range(20)]
        assert all(len(v) == 5 and v.isdigit() for v in values)
        assert len(set(values)) == 20

    def test_number_range_is_sorted(self):
        resolver = ValueResolver(
            [_field("a/n", "1", mode=FieldMode.RANDOM, length=0, min=30, max=20)], [], [], seed=1,
        )
        values = [int(_resolve(resolver, "a/n", i)) for i in range(5)]
        assert all(20 <= v <= 30 for v in values)
        assert len(set(values)) == 5

    def test_exhausted_range_raises(self):
        resolver = ValueResolver(
            [_field("a/n", "1", mode=FieldMode.RANDOM, length=0, min=1, max=3)], [], [], seed=1,
        )
        with pytest.raises(UniqueValuesExhaustedError) as exc_info:
            for i in range(4):
                _resolve(resolver, "a/n", i)
        assert exc_info.value.field_id == "a/n"

    def test_random_date_within_span(self):
        resolver = ValueResolver(
            [_field("a/d", "2024-01-01", mode=FieldMode.RANDOM, date_span_days=10)], [], [], seed=3,
        )
        for i in range(4):
            day = date.fromisoformat(_resolve(resolver, "a/d", i))
            assert date(2024, 1, 1) <= day <= date(2024, 1, 10)

    def test_random_text_token(self):
        resolver = ValueResolver([_field("a/t", "ab", mode=FieldMode.RANDOM, length=2)], [], [], seed=3)
        token = _resolve(resolver, "a/t")
        assert len(token) == 4
        assert set(token) <= set(TOKEN_ALPHABET)

    def test_seed_makes_runs_reproducible(self):
        fields = [_field("a/t", "abcdef", mode=FieldMode.RANDOM)]
        first = _resolve(ValueResolver(fields, [], [], seed=42), "a/t")
        second = _resolve(ValueResolver(fields, [], [], seed=42), "a/t")
        assert first == second

    def test_cache_returns_same_value_at_same_position(self):
        resolver = ValueResolver([_field("a/t", "abcdef", mode=FieldMode.RANDOM)], [], [], seed=3)
        cache = {}
        assert _resolve(resolver, "a/t", 0, cache=cache) == _resolve(resolver, "a/t", 0, cache=cache)


class TestList:
    """Test list mode scopes."""

    def test_per_file_scope_cycles_by_file(self):
        resolver = ValueResolver([_field("a/c", "x", mode=FieldMode.LIST, list_text="red\ngreen")], [], [])
        assert [_resolve(resolver, "a/c", i) for i in range(3)] == ["red", "green", "red"]

    def test_empty_list_falls_back_to_value(self):
        resolver = ValueResolver([_field("a/c", "x", mode=FieldMode.LIST, list_text="\n \n")], [], [])
        assert _resolve(resolver, "a/c", 1) == "x"

    def test_global_scope_uses_each_line_once(self):
        lines = [f"v{n}" for n in range(6)]
        resolver = ValueResolver(
            [_field("a/item[]/c", "x", mode=FieldMode.LIST, list_text="\n".join(lines), list_scope=ListScope.GLOBAL)],
            [LoopSetting(id="a/item", label="a/item", count=3)],
            [],
        )
        values = [
            _resolve(resolver, "a/item[]/c", f, {"a/item": i})
            for f in range(2)
            for i in range(3)
        ]
        assert values == lines

    def test_mixed_radix_position(self):
        resolver = ValueResolver(
            [],
            [LoopSetting(id="a/o", label="o", count=2), LoopSetting(id="a/o/i", label="i", count=3)],
            [],
        )
        assert resolver.iterations_per_file("a/o[]/i[]/v") == 6
        assert resolver.loop_position("a/o[]/i[]/v", {"a/o": 1, "a/o/i": 2}) == 5


class TestRelations:
    """Test relation-driven values."""

    def test_dependent_mirrors_master_with_affixes(self):
        resolver = ValueResolver(
            [_field("a/m", "1", mode=FieldMode.INCREMENT), _field("a/d", "1")],
            [],
            [_relation("a/m", "a/d", prefix="REF-", suffix="/x")],
        )
        assert _resolve(resolver, "a/d", 4) == "REF-5/x"

    def test_dependent_of_random_master_matches_master(self):
        resolver = ValueResolver(
            [_field("a/m", "abcdef", mode=FieldMode.RANDOM), _field("a/d", "abcdef")],
            [],
            [_relation("a/m", "a/d")],
            seed=5,
        )
        cache = {}
        assert _resolve(resolver, "a/d", 0, cache=cache) == _resolve(resolver, "a/m", 0, cache=cache)

    def test_disabled_relation_releases_dependent(self):
        resolver = ValueResolver(
            [_field("a/m", "1", mode=FieldMode.INCREMENT), _field("a/d", "keep")],
            [],
            [_relation("a/m", "a/d", enabled=False)],
        )
        assert _resolve(resolver, "a/d", 3) == "keep"

    def test_null_master_gives_bare_affixes(self):
        resolver = ValueResolver(
            [_field("root/m", "null", FieldKind.NULL), _field("root/d", "abc")],
            [],
            [_relation("root/m", "root/d", prefix="<", suffix=">")],
        )
        assert _resolve(resolver, "root/d") == "<>"

    def test_cycle_resolves_as_unrelated(self):
        resolver = ValueResolver(
            [_field("a/x", "xval"), _field("a/y", "yval")],
            [],
            [_relation("a/x", "a/y"), _relation("a/y", "a/x")],
        )
        assert _resolve(resolver, "a/x") == "xval"
        assert _resolve(resolver, "a/y") == "yval"
