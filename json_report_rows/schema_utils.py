from __future__ import annotations

from typing import Any, Dict, Iterable, List

from .paths import escape_path_segment, split_path


def build_tree_from_keys(keys: Iterable[str]) -> Dict[str, Any]:
    """Convert dot-notation keys into a nested dictionary tree.

    Leaf nodes are strings (the full path), branch nodes are dictionaries.
    A key that is both a leaf and a branch keeps its path under '__self__'.
    Insertion order follows `keys`.
    """
    tree: Dict[str, Any] = {}
    for key in keys:
        parts = split_path(key)
        if not parts:
            continue
        current = tree
        for part in parts[:-1]:
            node = current.setdefault(part, {})
            if isinstance(node, str):
                node = current[part] = {'__self__': node}
            current = node

        last = parts[-1]
        if isinstance(current.get(last), dict):
            current[last]['__self__'] = key
        else:
            current[last] = key
    return tree


def discover_fields(data: Any, parent_key: str = '') -> List[str]:
    """All leaf dot paths in a JSON structure, in first-seen order.

    Arrays are looked through: the elements of every array contribute their
    keys under the array's own path, and an array of scalars is a leaf.
    """
    found: Dict[str, None] = {}

    def walk(node: Any, prefix: str) -> None:
        if isinstance(node, dict):
            for k, v in node.items():
                key = escape_path_segment(k)
                walk(v, f"{prefix}.{key}" if prefix else key)
        elif isinstance(node, list):
            for item in node:
                if isinstance(item, (dict, list)):
                    walk(item, prefix)
                elif prefix:
                    found.setdefault(prefix)
        elif prefix:
            found.setdefault(prefix)

    walk(data, parent_key)
    return list(found)


def find_record_roots(data: Any, parent_key: str = '') -> List[str]:
    """Paths that could hold the record list: '(root)' plus nested lists of objects.

    Does not look inside arrays; anything below a record list is a candidate
    expansion point, not a root.
    """
    roots: List[str] = []
    if isinstance(data, list):
        return ['(root)']
    if isinstance(data, dict):
        if not parent_key:
            roots.append('(root)')
        for k, v in data.items():
            key = escape_path_segment(k)
            current = f"{parent_key}.{key}" if parent_key else key
            if isinstance(v, list) and any(isinstance(item, dict) for item in v):
                roots.append(current)
            elif isinstance(v, dict):
                roots.extend(find_record_roots(v, current))
    return roots
