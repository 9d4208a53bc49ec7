"""Derived loop counts."""
from math import ceil, prod

from messagelab.core.models import FieldMode, FieldSetting, ListScope, LoopSetting
from messagelab.core.paths import enclosing_loop_ids


def recompute_list_loop_counts(
    fields: list[FieldSetting],
    loops: list[LoopSetting],
    file_count: int,
) -> list[LoopSetting]:
    """Size loops so global-scope list fields can use each line once.

    For every list-mode field with ``global`` scope, the innermost loop
    enclosing it is set to ``ceil(lines / (file_count * outer iterations))``,
    minimum 1. When several such fields share a loop the largest count wins;
    loops not enclosing such a field keep their count.

    Args:
        fields: Current field settings
        loops: Current loop settings
        file_count: Number of files the batch will produce

    Returns:
        New loop settings (the input list is left untouched)
    """
    counts = {loop.id: loop.count for loop in loops}
    files = max(1, file_count)
    desired: dict[str, int] = {}

    for field in fields:
        if field.mode != FieldMode.LIST or field.list_scope != ListScope.GLOBAL:
            continue
        lines = field.list_lines
        if not lines:
            continue
        enclosing = [loop_id for loop_id in enclosing_loop_ids(field.id) if loop_id in counts]
        if not enclosing:
            continue
        innermost = enclosing[-1]
        outer = prod(counts[loop_id] for loop_id in enclosing[:-1])
        needed = max(1, ceil(len(lines) / (files * outer)))
        desired[innermost] = max(desired.get(innermost, 0), needed)

    counts.update(desired)
    return [
        loop if loop.count == counts[loop.id] else loop.model_copy(update={"count": counts[loop.id]})
        for loop in loops
    ]
