"""Detection of value relations between fields."""
from typing import Any

from messagelab.core.models import FieldSetting, Relation

MIN_RELATION_LENGTH = 3
IGNORED_VALUES = frozenset({"true", "false", "null"})


def relation_id(master_id: str, dependent_id: str) -> str:
    return f"{master_id}::{dependent_id}::exact"


def detect_relations(fields: list[FieldSetting]) -> list[Relation]:
    """Link fields that share an identical, non-trivial value.

    Fields are grouped by trimmed value. Values shorter than
    ``MIN_RELATION_LENGTH`` and boolean/null literals are ignored. In every
    group of two or more, the first field becomes the master and each other
    member a dependent.

    Args:
        fields: Flattened fields in document order

    Returns:
        Relations in detection order, without duplicate ids
    """
    groups: dict[str, list[FieldSetting]] = {}
    for field in fields:
        value = field.value.strip()
        if len(value) < MIN_RELATION_LENGTH:
            continue
        if value.lower() in IGNORED_VALUES:
            continue
        groups.setdefault(value, []).append(field)

    unique: dict[str, Relation] = {}
    for group in groups.values():
        if len(group) < 2:
            continue
        master = group[0]
        for dependent in group[1:]:
            rel_id = relation_id(master.id, dependent.id)
            unique.setdefault(rel_id, Relation(
                id=rel_id,
                master_id=master.id,
                dependent_id=dependent.id,
            ))
    return list(unique.values())


def normalize_relation(raw: dict[str, Any]) -> Relation:
    """Build a relation from stored data; missing prefix/suffix/enabled get defaults."""
    data = dict(raw)
    if data.get("enabled") is None:
        data["enabled"] = True
    return Relation.model_validate(data)


def relations_by_dependent(relations: list[Relation]) -> dict[str, Relation]:
    """Map each dependent to its first enabled relation."""
    mapping: dict[str, Relation] = {}
    for rel in relations:
        if not rel.enabled:
            continue
        mapping.setdefault(rel.dependent_id, rel)
    return mapping
