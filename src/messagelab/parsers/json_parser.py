"""JSON template parser."""
import json
import math
from typing import Any

from messagelab.core.fields import detect_kind
from messagelab.core.models import (
    DataFormat,
    FieldKind,
    JsonNodeType,
    JsonScalarType,
    LoopSetting,
    Node,
    ParseOutcome,
)
from messagelab.core.paths import LOOP_MARKER, normalize_loop_id
from messagelab.core.relations import detect_relations
from messagelab.core.tree import flatten_json_fields
from messagelab.exceptions import JsonParseError
from messagelab.parsers.base import TemplateParser, clean_text

ROOT_TAG = "root"
ITEM_TAG = LOOP_MARKER


def value_kind(value: Any) -> FieldKind:
    """Kind of a decoded JSON scalar; strings only ever become number, date or text."""
    if value is None:
        return FieldKind.NULL
    if isinstance(value, bool):
        return FieldKind.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldKind.NUMBER
    if isinstance(value, str):
        return detect_kind(value)
    return FieldKind.TEXT


def value_to_string(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value) if math.isfinite(value) else "0"
    if isinstance(value, (int, str)):
        return str(value)
    return ""


def original_type(value: Any) -> JsonScalarType:
    if value is None:
        return JsonScalarType.NULL
    if isinstance(value, bool):
        return JsonScalarType.BOOLEAN
    if isinstance(value, (int, float)):
        return JsonScalarType.NUMBER
    return JsonScalarType.STRING


def build_json_node(value: Any, tag: str, path: str, loops: list[LoopSetting]) -> Node:
    """Build the node for a decoded JSON value.

    Arrays keep a single representative item (the first element, or a null
    placeholder) and register a loop sized to the array length.
    """
    if isinstance(value, list):
        item_path = path + LOOP_MARKER
        loop_id = normalize_loop_id(item_path)
        loops.append(LoopSetting(id=loop_id, label=loop_id, count=max(1, len(value))))
        item_value = value[0] if value else None
        item = build_json_node(item_value, ITEM_TAG, item_path, loops)
        return Node(tag=tag, children=(item,), json_type=JsonNodeType.ARRAY, loop_id=loop_id)

    if isinstance(value, dict):
        children = tuple(
            build_json_node(entry, key, f"{path}/{key}", loops)
            for key, entry in value.items()
        )
        return Node(tag=tag, children=children, json_type=JsonNodeType.OBJECT)

    return Node(
        tag=tag,
        json_type=JsonNodeType.VALUE,
        json_value=value_to_string(value),
        json_value_kind=value_kind(value),
        json_original_type=original_type(value),
    )


def _reject_constant(name: str) -> Any:
    raise JsonParseError(f"Invalid JSON literal: {name}")


class JsonTemplateParser(TemplateParser):
    """Parses JSON documents; every array becomes a loop."""

    format = DataFormat.JSON

    def _parse(self, text: str) -> ParseOutcome:
        source = clean_text(text)
        try:
            value = json.loads(source, parse_constant=_reject_constant)
        except json.JSONDecodeError as e:
            raise JsonParseError(e.msg, line=e.lineno, column=e.colno, original_error=e) from e

        loops: list[LoopSetting] = []
        root = build_json_node(value, ROOT_TAG, ROOT_TAG, loops)
        fields = flatten_json_fields(root)
        return ParseOutcome.success(root, fields, loops, detect_relations(fields))
