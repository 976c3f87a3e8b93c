from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .accessors import get_value_by_path
from .expansion import ABSENT, ROOT_OWNER, Context, OwnerKey
from .paths import FieldPath

EMPTY = ''
DEFAULT_SEPARATOR = ', '
ROOT_PATH = '(root)'

ScalarTypes = (str, int, float, bool)


@dataclass
class BuiltRow:
    """One output row plus the bookkeeping dedupe and merge need.

    `values` is keyed by the configured field string, in configured order.
    `owners` holds the owner key each non-empty value came from.
    """

    group: Any
    values: Dict[str, Any]
    owners: Dict[str, OwnerKey] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return all(is_blank(v) for v in self.values.values())

    def copy(self) -> 'BuiltRow':
        return BuiltRow(self.group, dict(self.values), dict(self.owners))


def is_blank(value: Any) -> bool:
    return value is None or value == EMPTY


def resolve_records(data: Any, root_path: str = ROOT_PATH) -> List[Any]:
    """Locate the record list inside a parsed JSON document.

    - list -> the list itself
    - mapping with root '(root)' -> a single record
    - otherwise the value at `root_path` (a list, or one record)
    """
    if data is None:
        return []

    if root_path in (None, '', ROOT_PATH):
        if isinstance(data, list):
            return data
        return [data]

    target = get_value_by_path(data, root_path)
    if isinstance(target, list):
        return target
    if target is not None:
        return [target]
    return []


def format_cell_value(value: Any, separator: str = DEFAULT_SEPARATOR) -> Any:
    """Turn a resolved leaf into something a spreadsheet cell can hold."""
    if value is None or value is ABSENT:
        return EMPTY
    if isinstance(value, ScalarTypes):
        return value
    if isinstance(value, list) and all(isinstance(v, ScalarTypes) or v is None for v in value):
        return separator.join(EMPTY if v is None else str(v) for v in value)
    try:
        return json.dumps(value, ensure_ascii=False)
    except TypeError:
        return str(value)


def resolve_field(record: Mapping[str, Any], context: Context, path: FieldPath) -> Tuple[Any, OwnerKey]:
    """Value of one configured field for one context, with its owner."""
    sel_path, selection = context.selection_for(path)
    if selection is None:
        return get_value_by_path(record, path), ROOT_OWNER

    element = selection.element
    if element is ABSENT:
        return None, selection.owner
    suffix = path[len(sel_path):]
    if not suffix:
        return element, selection.owner
    return get_value_by_path(element, suffix), selection.owner


def build_row(
    record: Mapping[str, Any],
    context: Context,
    fields: Sequence[Tuple[str, FieldPath]],
    group_key: FieldPath,
    separator: str = DEFAULT_SEPARATOR,
) -> BuiltRow:
    values: Dict[str, Any] = {}
    owners: Dict[str, OwnerKey] = {}
    for name, path in fields:
        raw, owner = resolve_field(record, context, path)
        values[name] = format_cell_value(raw, separator)
        owners[name] = owner

    group_value, _ = resolve_field(record, context, group_key)
    return BuiltRow(group=format_cell_value(group_value, separator), values=values, owners=owners)
