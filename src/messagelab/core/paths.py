"""Template path addressing.

A template path is a ``/``-separated tag path without a leading slash in
which every repeated position carries the bare marker ``[]``
(``root/items/item[]/name``). Concrete paths built while walking a tree may
carry numeric markers (``item[2]``); :func:`to_template_path` collapses them.
"""
import re

LOOP_MARKER = "[]"

_INDEX_MARKER = re.compile(r"\[\d+\]")
_MARKER_RUN = re.compile(r"\[\]((?:\[\])*)")


def normalize_id(path: str) -> str:
    """Drop the leading separator."""
    return path[1:] if path.startswith("/") else path


def to_template_path(concrete_path: str) -> str:
    """Collapse numeric repetition indexes into ``[]`` and drop the leading ``/``."""
    return normalize_id(_INDEX_MARKER.sub(LOOP_MARKER, concrete_path))


def strip_loop_markers(path: str) -> str:
    """Remove every ``[]`` marker (lookup key irrespective of markers)."""
    return path.replace(LOOP_MARKER, "")


def normalize_loop_id(path: str) -> str:
    """Canonical loop id for the repeated position at ``path``.

    Markers are stripped, except that a run of consecutive markers only loses
    one, so an array nested directly in an array (``m[][]``) keeps an id
    distinct from its parent (``m[]`` vs ``m``).
    """
    return _MARKER_RUN.sub(r"\1", normalize_id(path))


def join_child_path(parent: str, tag: str, is_loop: bool = False) -> str:
    """Path of a named child; loop representatives carry the marker."""
    child = f"{parent}/{tag}" if parent else tag
    return child + LOOP_MARKER if is_loop else child


def enclosing_loop_ids(field_id: str) -> list[str]:
    """Loop ids of every repeated position enclosing ``field_id``, outermost first.

    >>> enclosing_loop_ids("root/items/item[]/tags[]")
    ['root/items/item', 'root/items/item/tags']
    """
    ids = []
    for match in re.finditer(re.escape(LOOP_MARKER), field_id):
        ids.append(normalize_loop_id(field_id[:match.end()]))
    return ids
