from __future__ import annotations

from typing import Any, Dict, Iterable, List

from .dedupe import value_signature
from .records import BuiltRow, is_blank


def _selection_indices(row: BuiltRow) -> Dict[Any, Any]:
    """Expansion path -> selected index, over the row's non-empty values."""
    indices: Dict[Any, Any] = {}
    for name, value in row.values.items():
        if is_blank(value):
            continue
        for path, index in row.owners.get(name, ()):
            indices[path] = index
    return indices


def _collides(acc: BuiltRow, candidate: BuiltRow, name: str, value: Any) -> bool:
    """Both rows fill `name` with values that cannot share one cell."""
    current = acc.values.get(name)
    if is_blank(current):
        return False
    if value_signature(current) != value_signature(value):
        return True
    # equal text from another owner is a second value, not a repeat
    return acc.owners.get(name) != candidate.owners.get(name)


def rows_conflict(acc: BuiltRow, candidate: BuiltRow, owner_aware: bool = False) -> bool:
    """True when both rows hold a non-empty value for the same field.

    Equal values only merge when they come from the same owner. With
    `owner_aware`, values read from different elements of the same array
    also conflict, even when the fields themselves do not overlap.
    """
    for name, value in candidate.values.items():
        if is_blank(value):
            continue
        if _collides(acc, candidate, name, value):
            return True

    if owner_aware:
        acc_indices = _selection_indices(acc)
        for path, index in _selection_indices(candidate).items():
            if path in acc_indices and acc_indices[path] != index:
                return True
    return False


def absorb(acc: BuiltRow, candidate: BuiltRow) -> None:
    for name, value in candidate.values.items():
        if is_blank(value) or not is_blank(acc.values.get(name)):
            continue
        acc.values[name] = value
        if name in candidate.owners:
            acc.owners[name] = candidate.owners[name]


def merge_group(rows: List[BuiltRow], owner_aware: bool = False) -> List[BuiltRow]:
    """Greedy first-fit merge of the rows of one group."""
    used = [False] * len(rows)
    merged: List[BuiltRow] = []

    for i, row in enumerate(rows):
        if used[i]:
            continue
        acc = row.copy()
        used[i] = True
        for j in range(i + 1, len(rows)):
            if used[j] or rows[j].is_empty():
                continue
            if not rows_conflict(acc, rows[j], owner_aware):
                absorb(acc, rows[j])
                used[j] = True
        if not acc.is_empty():
            merged.append(acc)
    return merged


def merge_rows(rows: Iterable[BuiltRow], owner_aware: bool = False) -> List[BuiltRow]:
    """Merge rows per group; groups keep their first-appearance order."""
    groups: Dict[Any, List[BuiltRow]] = {}
    for row in rows:
        groups.setdefault(_group_token(row.group), []).append(row)

    result: List[BuiltRow] = []
    for group_rows in groups.values():
        result.extend(merge_group(group_rows, owner_aware))
    return result


def _group_token(group: Any):
    return (type(group).__name__, group)
