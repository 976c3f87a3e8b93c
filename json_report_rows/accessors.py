from __future__ import annotations

from typing import Any, Mapping

from .paths import PathLike, split_path


def get_value_by_path(data: Any, path: PathLike) -> Any:
    """Retrieve a value from nested mappings using a dot path.

    Returns None as soon as an intermediate is missing, None or not a
    mapping. Lists are not traversed; an array on the way is a dead end.
    """
    val = data
    for key in split_path(path):
        if not isinstance(val, Mapping):
            return None
        val = val.get(key)
        if val is None:
            return None
    return val


def set_value_by_path(data: Any, path: PathLike, value: Any):
    """Set a value in a nested dict by dot path, creating mappings as needed.

    Mutates `data`; callers pass a copy when the source must stay intact.
    """
    parts = split_path(path)
    if not parts or not isinstance(data, dict):
        return value

    current = data
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value
    return data


def replace_at_path(data: Mapping[str, Any], path: PathLike, value: Any) -> dict:
    """Return a copy of `data` with the value at `path` replaced.

    Only the mappings along `path` are copied; every other branch is shared
    with the original, which is never modified.
    """
    parts = split_path(path)
    root = dict(data)
    if not parts:
        return root

    current = root
    for part in parts[:-1]:
        nxt = current.get(part)
        nxt = dict(nxt) if isinstance(nxt, Mapping) else {}
        current[part] = nxt
        current = nxt
    current[parts[-1]] = value
    return root
