"""Resolution of a field's value for one position of one output document."""
from collections.abc import Mapping, Sequence
from datetime import date, timedelta
from math import prod
from typing import Optional

from faker import Faker
from faker.providers import BaseProvider

from messagelab.core.fields import parse_date_prefix
from messagelab.core.models import (
    FieldKind,
    FieldMode,
    FieldSetting,
    ListScope,
    LoopSetting,
    Relation,
    allowed_modes,
)
from messagelab.core.paths import enclosing_loop_ids, strip_loop_markers
from messagelab.core.relations import relations_by_dependent
from messagelab.generators.unique_values import DEFAULT_MAX_ATTEMPTS, UniqueValuePool
from messagelab.logging_config import get_logger

TOKEN_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MIN_TOKEN_LENGTH = 4

Cache = dict[tuple, Optional[str]]


class TokenProvider(BaseProvider):
    """Faker provider for the random value shapes fields can ask for."""

    def digit_string(self, length: int) -> str:
        """Exactly ``length`` random digits, leading zeros allowed."""
        return self.numerify("#" * length)

    def token(self, length: int) -> str:
        """Random upper-case token without the ambiguous characters I, O, 0 and 1."""
        return self.lexify("?" * length, letters=TOKEN_ALPHABET)


def format_number(value: float) -> str:
    """Integral results print without a decimal point."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.10f}".rstrip("0").rstrip(".")


def _as_number(value: str) -> float:
    try:
        return float(value.strip())
    except ValueError:
        return 0.0


def _as_bool(value: str) -> str:
    return "true" if value.strip().lower() == "true" else "false"


class ValueResolver:
    """Resolves field values for a generation run.

    One resolver lives for the whole run: it owns the random source and the
    uniqueness registry. Callers pass a fresh cache per output document so a
    field read twice at the same position (directly or through a relation)
    yields the same value.
    """

    def __init__(
        self,
        fields: list[FieldSetting],
        loops: list[LoopSetting],
        relations: list[Relation],
        seed: int | None = None,
        max_unique_attempts: int = DEFAULT_MAX_ATTEMPTS,
        locale: str = "en_US",
    ):
        """Initialize the resolver.

        Args:
            fields: Field settings of the template
            loops: Loop settings of the template
            relations: Relations; only enabled ones take effect
            seed: Random seed for reproducible output
            max_unique_attempts: Retry budget for unique random values
            locale: Faker locale
        """
        self.fake = Faker(locale)
        if seed is not None:
            self.fake.seed_instance(seed)
        self.fake.add_provider(TokenProvider)

        self.logger = get_logger(__name__)
        self.unique = UniqueValuePool(max_unique_attempts)

        self._fields = {field.id: field for field in fields}
        self._fields_by_key: dict[str, FieldSetting] = {}
        for field in fields:
            self._fields_by_key.setdefault(strip_loop_markers(field.id), field)
        self._loop_counts = {loop.id: loop.count for loop in loops}
        self._relations = relations_by_dependent(relations)
        self._row_loop_id: Optional[str] = None
        self._row_samples: dict[str, tuple[str, ...]] = {}

    def bind_rows(self, row_loop_id: Optional[str], samples: Mapping[str, Sequence[str]]) -> None:
        """Resolve for row output, where each row takes the place of a file.

        The row loop stops counting as an enclosing loop, and a ``same``-mode
        field listed in ``samples`` repeats the source rows in order.
        """
        self._row_loop_id = row_loop_id
        self._row_samples = {field_id: tuple(values) for field_id, values in samples.items() if values}

    def loop_count(self, loop_id: Optional[str]) -> int:
        """Configured iterations of a loop (1 for unknown loops)."""
        if loop_id is None:
            return 1
        return self._loop_counts.get(loop_id, 1)

    def field_for(self, field_id: str) -> Optional[FieldSetting]:
        """Field at ``field_id``, falling back to a marker-insensitive match."""
        field = self._fields.get(field_id)
        if field is None:
            field = self._fields_by_key.get(strip_loop_markers(field_id))
        return field

    def resolve(
        self,
        field_id: str,
        file_index: int,
        loop_indices: Mapping[str, int],
        cache: Cache,
    ) -> Optional[str]:
        """Value of a field at one position, or None for the null marker.

        Args:
            field_id: Template path of the field
            file_index: Zero-based output document (CSV: row) index
            loop_indices: Iteration index of every enclosing loop
            cache: Per-document memo

        Raises:
            KeyError: If no field matches ``field_id``
            UniqueValuesExhaustedError: If a random draw cannot stay unique
        """
        field = self.field_for(field_id)
        if field is None:
            raise KeyError(field_id)
        return self._resolve(field, file_index, loop_indices, cache, set())

    def _resolve(
        self,
        field: FieldSetting,
        file_index: int,
        loop_indices: Mapping[str, int],
        cache: Cache,
        visiting: set[str],
    ) -> Optional[str]:
        key = (field.id, file_index, tuple(sorted(loop_indices.items())))
        if key in cache:
            return cache[key]

        relation = self._relations.get(field.id)
        master = self.field_for(relation.master_id) if relation is not None else None

        if master is None:
            value = self._resolve_own(field, file_index, loop_indices)
        elif field.id in visiting:
            # Not cached: the outer resolution of this field stores the related value.
            self.logger.warning(
                "Relation cycle detected, resolving field as unrelated",
                field_id=field.id,
                relation_id=relation.id,
            )
            return self._resolve_own(field, file_index, loop_indices)
        else:
            visiting.add(field.id)
            try:
                master_value = self._resolve(master, file_index, loop_indices, cache, visiting)
            finally:
                visiting.discard(field.id)
            value = f"{relation.prefix}{master_value or ''}{relation.suffix}"

        cache[key] = value
        return value

    def _resolve_own(
        self,
        field: FieldSetting,
        file_index: int,
        loop_indices: Mapping[str, int],
    ) -> Optional[str]:
        if field.kind == FieldKind.NULL:
            return None

        mode = field.mode if field.mode in allowed_modes(field.kind) else FieldMode.SAME

        if field.kind == FieldKind.BOOLEAN:
            if mode == FieldMode.FIXED:
                return _as_bool(field.fixed_value)
            if mode == FieldMode.RANDOM:
                return "true" if self.fake.pybool() else "false"
            return _as_bool(field.value)

        if mode == FieldMode.FIXED:
            return field.fixed_value
        if mode == FieldMode.INCREMENT:
            return self._increment(field, file_index + sum(loop_indices.values()))
        if mode == FieldMode.RANDOM:
            return self._random(field)
        if mode == FieldMode.LIST:
            return self._list_value(field, file_index, loop_indices)
        samples = self._row_samples.get(field.id)
        if samples:
            return samples[file_index % len(samples)]
        return field.value

    def _increment(self, field: FieldSetting, offset: int) -> str:
        if field.kind == FieldKind.NUMBER:
            return format_number(_as_number(field.value) + field.step * offset)
        if field.kind == FieldKind.DATE:
            base = parse_date_prefix(field.value) or date.today()
            return (base + timedelta(days=round(field.step * offset))).isoformat()
        return field.value

    def _random(self, field: FieldSetting) -> str:
        if field.kind == FieldKind.NUMBER:
            if field.length > 0:
                length = field.length
                return self.unique.draw(field.id, 10 ** length, lambda: self.fake.digit_string(length))
            low, high = sorted((int(field.min), int(field.max)))
            return self.unique.draw(
                field.id,
                high - low + 1,
                lambda: str(self.fake.random_int(min=low, max=high)),
            )

        if field.kind == FieldKind.DATE:
            base = parse_date_prefix(field.value) or date.today()
            span = max(1, field.date_span_days)
            return self.unique.draw(
                field.id,
                span,
                lambda: (base + timedelta(days=self.fake.random_int(min=0, max=span - 1))).isoformat(),
            )

        length = max(MIN_TOKEN_LENGTH, field.length)
        return self.unique.draw(field.id, len(TOKEN_ALPHABET) ** length, lambda: self.fake.token(length))

    def _list_value(
        self,
        field: FieldSetting,
        file_index: int,
        loop_indices: Mapping[str, int],
    ) -> str:
        lines = field.list_lines or [field.value]
        if field.list_scope == ListScope.GLOBAL:
            slot = file_index * self.iterations_per_file(field.id) + self.loop_position(field.id, loop_indices)
            return lines[slot % len(lines)]
        return lines[file_index % len(lines)]

    def _enclosing_loops(self, field_id: str) -> list[str]:
        return [
            loop_id for loop_id in enclosing_loop_ids(field_id)
            if loop_id in self._loop_counts and loop_id != self._row_loop_id
        ]

    def iterations_per_file(self, field_id: str) -> int:
        """Number of positions a field occupies in one document."""
        return prod(self._loop_counts[loop_id] for loop_id in self._enclosing_loops(field_id))

    def loop_position(self, field_id: str, loop_indices: Mapping[str, int]) -> int:
        """Mixed-radix index of the current position over the enclosing loops."""
        position = 0
        for loop_id in self._enclosing_loops(field_id):
            position = position * self._loop_counts[loop_id] + loop_indices.get(loop_id, 0)
        return position
