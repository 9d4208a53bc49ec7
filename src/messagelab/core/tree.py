"""Operations on the generic node tree.

Every function here is pure: trees are never mutated, edits return new
trees built with :func:`dataclasses.replace`.
"""
from collections import Counter
from collections.abc import Iterator
from dataclasses import replace

from messagelab.core.fields import create_field_setting, detect_kind
from messagelab.core.models import FieldSetting, JsonNodeType, LoopSetting, Node
from messagelab.core.paths import LOOP_MARKER, join_child_path, normalize_id, normalize_loop_id


def child_path(node: Node, path: str, child: Node) -> str:
    """Template path of ``child`` below ``node`` at ``path``.

    Array items take the marker on the array's own path; named children get
    a path segment, marked when the child is an XML loop representative.
    JSON arrays carry their loop id but are marked only at their items.
    """
    if node.json_type == JsonNodeType.ARRAY:
        return path + LOOP_MARKER
    is_loop = child.loop_id is not None and child.json_type != JsonNodeType.ARRAY
    return join_child_path(path, child.tag, is_loop)


def normalize_loops(root: Node) -> tuple[Node, list[LoopSetting]]:
    """Collapse repeated XML siblings into one representative plus a loop.

    For each tag appearing more than once among a node's direct children,
    only the first occurrence is kept; it is tagged with the loop id and a
    :class:`LoopSetting` records the original number of occurrences.

    Returns:
        The normalized tree and the detected loops (parents before children)
    """
    loops: list[LoopSetting] = []
    return _normalize_loops(root, root.tag, loops), loops


def _normalize_loops(node: Node, path: str, loops: list[LoopSetting]) -> Node:
    counts = Counter(child.tag for child in node.children)
    kept = []
    seen = set()
    for child in node.children:
        total = counts[child.tag]
        if total > 1:
            if child.tag in seen:
                continue
            seen.add(child.tag)
            loop_id = normalize_loop_id(join_child_path(path, child.tag, is_loop=True))
            loops.append(LoopSetting(id=loop_id, label=loop_id, count=total))
            child = replace(child, loop_id=loop_id)
        kept.append(child)

    children = tuple(
        _normalize_loops(child, child_path(node, path, child), loops)
        for child in kept
    )
    return replace(node, children=children)


def flatten_xml_fields(root: Node) -> list[FieldSetting]:
    """One field per attribute and per non-blank leaf text, in document order.

    Namespace declarations are structure, not data, and never become fields.
    """
    fields: list[FieldSetting] = []
    _flatten_xml(root, root.tag, fields)
    return fields


def _flatten_xml(node: Node, path: str, fields: list[FieldSetting]) -> None:
    for attr in node.attrs:
        if attr.is_namespace_declaration:
            continue
        fields.append(create_field_setting(f"{path}/@{attr.name}", attr.value))

    if not node.children and node.text is not None:
        value = node.text.strip()
        if value:
            fields.append(create_field_setting(path, value))

    for child in node.children:
        _flatten_xml(child, child_path(node, path, child), fields)


def flatten_json_fields(root: Node) -> list[FieldSetting]:
    """One field per scalar leaf; containers and arrays are never fields."""
    fields: list[FieldSetting] = []
    _flatten_json(root, root.tag, fields)
    return fields


def _flatten_json(node: Node, path: str, fields: list[FieldSetting]) -> None:
    if node.json_type == JsonNodeType.VALUE:
        value = node.json_value or ""
        kind = node.json_value_kind or detect_kind(value)
        fields.append(create_field_setting(path, value, kind))
        return

    if node.json_type == JsonNodeType.ARRAY:
        if node.children:
            _flatten_json(node.children[0], path + LOOP_MARKER, fields)
        return

    for child in node.children:
        _flatten_json(child, child_path(node, path, child), fields)


def iter_nodes(root: Node) -> Iterator[tuple[str, Node]]:
    """Yield ``(template path, node)`` for every node, depth first."""
    stack = [(root.tag, root)]
    while stack:
        path, node = stack.pop()
        yield path, node
        stack.extend(
            (child_path(node, path, child), child)
            for child in reversed(node.children)
        )


def collect_paths(root: Node) -> list[str]:
    """Template paths of every node, depth first (for browsing and search)."""
    return [path for path, _ in iter_nodes(root)]


def apply_loop_marker(root: Node, target_path: str, loop_id: str) -> Node:
    """Return a copy of ``root`` where the node at ``target_path`` represents ``loop_id``."""
    return _set_loop_marker(root, root.tag, normalize_id(target_path), loop_id)


def clear_loop_marker(root: Node, target_path: str) -> Node:
    """Return a copy of ``root`` where the node at ``target_path`` is no longer a loop."""
    return _set_loop_marker(root, root.tag, normalize_id(target_path), None)


def _set_loop_marker(node: Node, path: str, target: str, loop_id) -> Node:
    children = tuple(
        _set_loop_marker(child, child_path(node, path, child), target, loop_id)
        for child in node.children
    )
    updated = replace(node, children=children)
    if path == target:
        updated = replace(updated, loop_id=loop_id)
    return updated
