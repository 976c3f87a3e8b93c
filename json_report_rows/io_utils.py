from __future__ import annotations

import csv
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ('xlsx', 'csv', 'json')
MIN_COLUMN_WIDTH = 10
MAX_COLUMN_WIDTH = 50

PathArg = Union[str, Path]


def _upload_path(file_obj) -> str:
    if isinstance(file_obj, (str, os.PathLike)):
        return os.fspath(file_obj)
    # Gradio upload wrappers carry the temp-file path in .name
    return file_obj.name


def read_json_content(file_obj):
    """Parse an incident feed from a path, an upload wrapper or an open file.

    A UTF-8 byte-order mark, as left by spreadsheet exports, is ignored.
    """
    if file_obj is None:
        raise ValueError("No file uploaded.")

    if hasattr(file_obj, 'read'):
        if hasattr(file_obj, 'seek'):
            file_obj.seek(0)
        content = file_obj.read()
        if isinstance(content, bytes):
            content = content.decode('utf-8-sig')
        return json.loads(content.lstrip('\ufeff'))

    with open(_upload_path(file_obj), 'r', encoding='utf-8-sig') as f:
        return json.load(f)


def _ordered(rows: Sequence[Dict[str, Any]], header: Sequence[str]) -> List[List[Any]]:
    return [[row.get(h, '') for h in header] for row in rows]


def write_rows_json(path: PathArg, header: Sequence[str], rows: Sequence[Dict[str, Any]]) -> Path:
    path = Path(path)
    payload = [dict(zip(header, values)) for values in _ordered(rows, header)]
    with path.open('w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    return path


def write_rows_csv(path: PathArg, header: Sequence[str], rows: Sequence[Dict[str, Any]]) -> Path:
    path = Path(path)
    with path.open('w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows(_ordered(rows, header))
    return path


def column_widths(header: Sequence[str], values: Sequence[Sequence[Any]]) -> List[int]:
    """Width per column: longest cell + 2, clamped to [10, 50]."""
    widths = []
    for col, name in enumerate(header):
        longest = len(str(name))
        for line in values:
            cell = line[col]
            if cell not in (None, ''):
                longest = max(longest, len(str(cell)))
        widths.append(min(max(MIN_COLUMN_WIDTH, longest + 2), MAX_COLUMN_WIDTH))
    return widths


def write_rows_xlsx(
    path: PathArg,
    header: Sequence[str],
    rows: Sequence[Dict[str, Any]],
    worksheet_name: str = 'Report',
) -> Path:
    path = Path(path)
    values = _ordered(rows, header)

    wb = Workbook()
    ws = wb.active
    ws.title = worksheet_name[:31] or 'Report'
    ws.append(list(header))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for line in values:
        ws.append(line)

    for idx, width in enumerate(column_widths(header, values), start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.freeze_panes = 'A2'

    wb.save(path)
    return path


def detect_format(path: PathArg, fmt: Optional[str] = None) -> str:
    if fmt:
        fmt = fmt.lower()
    else:
        fmt = Path(path).suffix.lstrip('.').lower()
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format: {fmt or '(none)'} (expected one of {', '.join(OUTPUT_FORMATS)})")
    return fmt


def write_rows(
    path: PathArg,
    header: Sequence[str],
    rows: Sequence[Dict[str, Any]],
    fmt: Optional[str] = None,
    worksheet_name: str = 'Report',
) -> Path:
    """Write rows to `path` as xlsx, csv or json (by `fmt` or extension)."""
    fmt = detect_format(path, fmt)
    if fmt == 'xlsx':
        out = write_rows_xlsx(path, header, rows, worksheet_name)
    elif fmt == 'csv':
        out = write_rows_csv(path, header, rows)
    else:
        out = write_rows_json(path, header, rows)
    logger.info("Wrote %d rows to %s", len(rows), out)
    return out
