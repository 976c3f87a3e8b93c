from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

MISSING = '<missing>'


@dataclass(frozen=True)
class RowDifference:
    row: int  # 1-based
    field: str
    expected: Any
    actual: Any

    def describe(self) -> str:
        if self.field == '':
            side = 'actual' if self.actual == MISSING else 'expected'
            return f"Row {self.row}: missing in {side} output"
        return f"Row {self.row} {self.field}: expected {self.expected!r}, got {self.actual!r}"


def compare_row_sets(expected: Sequence[Dict[str, Any]], actual: Sequence[Dict[str, Any]]) -> List[RowDifference]:
    """Field-by-field differences between two row lists, by position."""
    diffs: List[RowDifference] = []
    for i in range(max(len(expected), len(actual))):
        if i >= len(actual):
            diffs.append(RowDifference(i + 1, '', 'row', MISSING))
            continue
        if i >= len(expected):
            diffs.append(RowDifference(i + 1, '', MISSING, 'row'))
            continue

        want, got = expected[i], actual[i]
        names = list(want) + [k for k in got if k not in want]
        for name in names:
            w = want.get(name, MISSING)
            g = got.get(name, MISSING)
            if w != g:
                diffs.append(RowDifference(i + 1, name, w, g))
    return diffs
