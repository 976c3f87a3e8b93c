"""Owner-scoped blanking of repeated values.

A value is blanked when the same field already showed the same value for the
same owner (the array element instance it was read from). State lives in a
`DedupState` that is cleared whenever the group changes.
"""
from __future__ import annotations

from collections.abc import Hashable
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .expansion import OwnerKey
from .records import EMPTY, BuiltRow, is_blank

_UNSET = object()


def value_signature(value: Any) -> Hashable:
    # 1, 1.0, True and '1' must not suppress each other.
    if isinstance(value, Hashable):
        return (type(value).__name__, value)
    return (type(value).__name__, repr(value))


class DedupState:
    """Seen values per (owner, field) for the current group."""

    def __init__(self):
        self.group: Any = _UNSET
        self._seen: Dict[Tuple[OwnerKey, str], Set[Hashable]] = {}

    def enter_group(self, group: Any) -> None:
        if self.group is _UNSET or group != self.group:
            self._seen.clear()
            self.group = group

    def first_sighting(self, owner: OwnerKey, field_name: str, value: Any) -> bool:
        seen = self._seen.setdefault((owner, field_name), set())
        sig = value_signature(value)
        if sig in seen:
            return False
        seen.add(sig)
        return True


def dedupe_rows(rows: Iterable[BuiltRow], state: Optional[DedupState] = None) -> List[BuiltRow]:
    """Blank repeated values; returns new rows, one per input row."""
    if state is None:
        state = DedupState()

    result: List[BuiltRow] = []
    for row in rows:
        state.enter_group(row.group)
        out = row.copy()
        for name, value in row.values.items():
            if is_blank(value):
                continue
            owner = row.owners.get(name, ())
            if not state.first_sighting(owner, name, value):
                out.values[name] = EMPTY
        result.append(out)
    return result
