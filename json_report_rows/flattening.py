from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .config import ReportConfig, parse_field_config, resolve_group_key
from .dedupe import DedupState, dedupe_rows
from .errors import ConfigurationError
from .expansion import CARTESIAN, DEFAULT_MAX_DEPTH, EXPANSION_MODES, expand_record
from .merging import merge_rows
from .paths import FieldPath
from .records import DEFAULT_SEPARATOR, BuiltRow, build_row

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


@dataclass
class FlattenStats:
    """Counters collected over one generate_rows call."""

    records_processed: int = 0
    records_skipped: int = 0
    rows_before_merge: int = 0
    rows_after_merge: int = 0
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    def start_processing(self) -> None:
        self.start_time = time.time()

    def end_processing(self) -> None:
        self.end_time = time.time()

    @property
    def reduction_percent(self) -> float:
        if not self.rows_before_merge:
            return 0.0
        return (self.rows_before_merge - self.rows_after_merge) / self.rows_before_merge * 100

    def log_summary(self) -> None:
        duration = None
        if self.start_time is not None and self.end_time is not None:
            duration = max(0.0, self.end_time - self.start_time)
        logger.info(
            "Flatten summary: records=%d, skipped=%d, rows_before_merge=%d, rows_after_merge=%d, reduction=%.1f%%, duration=%.3fs",
            self.records_processed,
            self.records_skipped,
            self.rows_before_merge,
            self.rows_after_merge,
            self.reduction_percent,
            duration or 0.0,
        )


def record_rows(
    record: Mapping[str, Any],
    fields: Sequence[tuple],
    group_key: FieldPath,
    mode: str = CARTESIAN,
    separator: str = DEFAULT_SEPARATOR,
    owner_aware_merge: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
    stats: Optional[FlattenStats] = None,
) -> List[BuiltRow]:
    """Expand, build, dedupe and merge the rows of one record."""
    paths = [path for _, path in fields]
    contexts = expand_record(record, paths, mode=mode, max_depth=max_depth)
    built = [build_row(record, ctx, fields, group_key, separator) for ctx in contexts]
    deduped = dedupe_rows(built, DedupState())
    merged = merge_rows(deduped, owner_aware=owner_aware_merge)

    if built:
        logger.debug("%s: %d rows before merge, %d rows after merge", built[0].group, len(built), len(merged))
    if stats is not None:
        stats.rows_before_merge += len(built)
        stats.rows_after_merge += len(merged)
    return merged


def generate_rows(
    records: Iterable[Any],
    field_config: Sequence[str],
    group_key_path: str,
    *,
    mode: str = CARTESIAN,
    separator: str = DEFAULT_SEPARATOR,
    owner_aware_merge: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
    stats: Optional[FlattenStats] = None,
) -> List[Row]:
    """Flatten nested records into report rows.

    Every record is expanded into one row per combination of array elements,
    repeated values are blanked per owning element, and non-conflicting rows
    are merged. Rows hold exactly the configured fields, in config order.
    """
    fields = parse_field_config(field_config)
    group_key = resolve_group_key(fields, group_key_path)
    if mode not in EXPANSION_MODES:
        raise ConfigurationError(f"Unknown mode {mode!r}; expected one of {', '.join(EXPANSION_MODES)}.")

    if stats is None:
        stats = FlattenStats()
    stats.start_processing()

    rows: List[Row] = []
    for record in records:
        if not isinstance(record, Mapping):
            logger.warning("Skipping non-object record of type %s", type(record).__name__)
            stats.records_skipped += 1
            continue
        merged = record_rows(
            record,
            fields,
            group_key,
            mode=mode,
            separator=separator,
            owner_aware_merge=owner_aware_merge,
            max_depth=max_depth,
            stats=stats,
        )
        rows.extend(row.values for row in merged)
        stats.records_processed += 1

    stats.end_processing()
    return rows


def generate_rows_from_config(records: Iterable[Any], config: ReportConfig, stats: Optional[FlattenStats] = None) -> List[Row]:
    return generate_rows(
        records,
        config.fields,
        config.group_key,
        mode=config.mode,
        separator=config.separator,
        owner_aware_merge=config.owner_aware_merge,
        max_depth=config.max_depth,
        stats=stats,
    )


def preview_rows(records: Iterable[Any], config: ReportConfig, limit: int = 3) -> List[Row]:
    """First `limit` report rows, expanding only as many records as needed."""
    limit = max(1, int(limit))
    rows: List[Row] = []
    for record in records:
        rows.extend(generate_rows_from_config([record], config))
        if len(rows) >= limit:
            break
    return rows[:limit]


def rows_for_export(rows: Iterable[Row], field_config: Sequence[str], headers: Optional[Dict[str, str]] = None) -> List[Row]:
    """Rename row keys to their output column names, keeping column order."""
    headers = headers or {}
    return [{headers.get(f, f): row.get(f, '') for f in field_config} for row in rows]
