from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple, Union

FieldPath = Tuple[str, ...]
PathLike = Union[str, Sequence[str]]


def escape_path_segment(segment: str) -> str:
    """Escape one key so it survives as a single dot-path segment.

    Feed keys such as 'lane.count' become 'lane\\.count'; a backslash is
    doubled so split_path reads the segment back unchanged.
    """
    if not isinstance(segment, str):
        segment = str(segment)
    return segment.replace('\\', '\\\\').replace('.', '\\.')


def split_path(path: PathLike) -> FieldPath:
    """Split a dot path on unescaped '.' into a tuple of segments.

    Tuples and lists are taken as already split. Empty segments are dropped,
    so 'a..b' and 'a.b' address the same field.
    """
    if path is None:
        return ()
    if isinstance(path, (tuple, list)):
        return tuple(str(p) for p in path if p != '')
    if not isinstance(path, str):
        path = str(path)

    parts: List[str] = []
    buf: List[str] = []
    escaping = False

    for ch in path:
        if escaping:
            buf.append(ch)
            escaping = False
        elif ch == '\\':
            escaping = True
        elif ch == '.':
            parts.append(''.join(buf))
            buf = []
        else:
            buf.append(ch)

    if escaping:
        # Trailing backslash; treat as literal.
        buf.append('\\')

    parts.append(''.join(buf))
    return tuple(p for p in parts if p != '')


def join_path(segments: Iterable[str]) -> str:
    return '.'.join(escape_path_segment(s) for s in segments)


def is_prefix(prefix: FieldPath, path: FieldPath, strict: bool = True) -> bool:
    """True when `prefix` leads to `path` (and is shorter, if strict)."""
    if strict and len(prefix) >= len(path):
        return False
    return len(prefix) <= len(path) and path[:len(prefix)] == prefix


def strict_prefixes(path: FieldPath) -> List[FieldPath]:
    return [path[:i] for i in range(1, len(path))]
