"""Array discovery and cross-product expansion of a single record.

A record is expanded by repeatedly finding the configured path prefixes that
hold an array right now, substituting one element for the array in a
copy-on-write copy of the record, and looking again. Each finished chain of
substitutions is a `Context`: the selected element per expansion path, plus the
owner identity of every selection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .accessors import get_value_by_path, replace_at_path
from .errors import ConfigurationError, ExpansionDepthError
from .paths import FieldPath, is_prefix, strict_prefixes

logger = logging.getLogger(__name__)

CARTESIAN = 'cartesian'
ZIP = 'zip'
EXPANSION_MODES = (CARTESIAN, ZIP)
DEFAULT_MAX_DEPTH = 64

# Chain of (expansion path, element index) from the record root down to an
# element. The empty tuple is the record itself.
OwnerKey = Tuple[Tuple[FieldPath, Optional[int]], ...]
ROOT_OWNER: OwnerKey = ()


class _Absent:
    """Marker for 'no element selected' (empty array, or short array in zip mode)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'ABSENT'

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


@dataclass(frozen=True)
class Selection:
    element: Any
    index: Optional[int]
    owner: OwnerKey


class Context(Mapping[FieldPath, Selection]):
    """Read-only mapping of expansion path -> Selection."""

    __slots__ = ('_selections',)

    def __init__(self, selections: Optional[Mapping[FieldPath, Selection]] = None):
        self._selections = MappingProxyType(dict(selections or {}))

    def __getitem__(self, path: FieldPath) -> Selection:
        return self._selections[path]

    def __iter__(self):
        return iter(self._selections)

    def __len__(self) -> int:
        return len(self._selections)

    def __repr__(self) -> str:
        return f"Context({dict(self._selections)!r})"

    def selection_for(self, path: FieldPath) -> Tuple[Optional[FieldPath], Optional[Selection]]:
        """Deepest selected path that is a prefix of (or equal to) `path`."""
        best: Optional[FieldPath] = None
        for sel_path in self._selections:
            if is_prefix(sel_path, path, strict=False):
                if best is None or len(sel_path) > len(best):
                    best = sel_path
        if best is None:
            return None, None
        return best, self._selections[best]

    def owner_for(self, path: FieldPath) -> OwnerKey:
        _, selection = self.selection_for(path)
        return selection.owner if selection is not None else ROOT_OWNER

    def with_selection(self, path: FieldPath, element: Any, index: Optional[int]) -> 'Context':
        owner = self.owner_for(path) + ((path, index),)
        selections = dict(self._selections)
        selections[path] = Selection(element, index, owner)
        return Context(selections)


def candidate_prefixes(field_paths: Sequence[FieldPath]) -> List[FieldPath]:
    """Strict prefixes of the configured paths, shallowest first.

    Ties keep the order in which the prefixes first show up in the config.
    """
    seen: Dict[FieldPath, int] = {}
    for path in field_paths:
        for prefix in strict_prefixes(path):
            if prefix not in seen:
                seen[prefix] = len(seen)
    return sorted(seen, key=lambda p: (len(p), seen[p]))


def find_expansion_points(
    record: Any,
    field_paths: Sequence[FieldPath],
    prefixes: Optional[Sequence[FieldPath]] = None,
) -> Tuple[FieldPath, ...]:
    """Configured prefixes that currently resolve to a list in `record`."""
    if prefixes is None:
        prefixes = candidate_prefixes(field_paths)
    return tuple(p for p in prefixes if isinstance(get_value_by_path(record, p), list))


def expand_record(
    record: Mapping[str, Any],
    field_paths: Sequence[FieldPath],
    mode: str = CARTESIAN,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[Context]:
    """Enumerate every combination of array selections for one record.

    Cartesian mode takes the product over all arrays reached by the
    configured fields. Zip mode pairs the arrays found at the same step by
    position instead. An empty array yields one ABSENT selection so the rest
    of the record still produces rows.
    """
    if mode not in EXPANSION_MODES:
        raise ConfigurationError(f"Unknown expansion mode: {mode!r} (expected one of {', '.join(EXPANSION_MODES)})")
    if max_depth < 1:
        raise ConfigurationError("max_depth must be a positive integer.")

    prefixes = candidate_prefixes(field_paths)
    contexts: List[Context] = []

    def recurse(current: Mapping[str, Any], context: Context, depth: int) -> None:
        points = find_expansion_points(current, field_paths, prefixes)
        if not points:
            contexts.append(context)
            return
        if depth >= max_depth:
            raise ExpansionDepthError(
                f"Array nesting deeper than {max_depth} levels at '{'.'.join(points[0])}'."
            )

        if mode == ZIP:
            arrays = [(p, get_value_by_path(current, p)) for p in points]
            width = max(len(items) for _, items in arrays)
            for i in range(max(width, 1)):
                substituted = current
                ctx = context
                for path, items in arrays:
                    element = items[i] if i < len(items) else ABSENT
                    substituted = replace_at_path(substituted, path, None if element is ABSENT else element)
                    ctx = ctx.with_selection(path, element, i if element is not ABSENT else None)
                recurse(substituted, ctx, depth + 1)
            return

        path = points[0]
        items = get_value_by_path(current, path)
        if not items:
            recurse(replace_at_path(current, path, None), context.with_selection(path, ABSENT, None), depth + 1)
            return
        for i, element in enumerate(items):
            recurse(replace_at_path(current, path, element), context.with_selection(path, element, i), depth + 1)

    recurse(record, Context(), 0)
    logger.debug("Expanded record into %d context(s) (%s mode)", len(contexts), mode)
    return contexts
