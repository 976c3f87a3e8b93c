from __future__ import annotations

import logging
import os
import tempfile
from typing import Any, Dict, List, Tuple

import gradio as gr

from .config import ReportConfig
from .errors import ConfigurationError, FlatteningError
from .expansion import CARTESIAN
from .flattening import FlattenStats, generate_rows_from_config, preview_rows, rows_for_export
from .io_utils import read_json_content, write_rows
from .paths import split_path
from .records import ROOT_PATH, resolve_records
from .schema_utils import discover_fields, find_record_roots

logger = logging.getLogger(__name__)


def prepare_dataset_payload(file_obj):
    if file_obj is None:
        return None, gr.update(choices=[ROOT_PATH], value=ROOT_PATH), "No file uploaded."

    try:
        data = read_json_content(file_obj)
    except Exception as e:
        return None, gr.update(choices=[ROOT_PATH], value=ROOT_PATH), f"Error parsing JSON: {str(e)}"

    roots = find_record_roots(data) or [ROOT_PATH]
    # Prefer a nested record list when the document is an object wrapping one.
    default_root = roots[1] if len(roots) > 1 and not isinstance(data, list) else roots[0]
    fields = discover_fields(resolve_records(data, default_root))
    return data, gr.update(choices=roots, value=default_root), f"Successfully loaded. Found {len(fields)} unique fields."


def compute_record_count_text(data: Any, root_path: str = ROOT_PATH) -> str:
    if data is None:
        return ""
    records = resolve_records(data, root_path or ROOT_PATH)
    objects = sum(1 for r in records if isinstance(r, dict))
    return f"Records: {objects}"


def load_and_parse_json_with_preview(file_obj):
    data, root_dropdown, message = prepare_dataset_payload(file_obj)
    if data is None:
        return None, [], root_dropdown, message, [], None, "", gr.update(choices=[], value=None)

    root = root_dropdown.get("value", ROOT_PATH) if isinstance(root_dropdown, dict) else ROOT_PATH
    return data, [], root_dropdown, message, [], None, compute_record_count_text(data, root), gr.update(choices=[], value=None)


def handle_root_change(data: Any, root_path: str):
    """New root: recount records and drop the field selection."""
    return compute_record_count_text(data, root_path or ROOT_PATH), [], None


def default_output_names(selected_fields: List[str]) -> List[str]:
    """Last path segment, or the full path when two fields share it."""
    lasts = [(split_path(f) or (f,))[-1] for f in selected_fields]
    return [last if lasts.count(last) == 1 else f for f, last in zip(selected_fields, lasts)]


def update_mapping_table(selected_fields):
    if not selected_fields:
        return []
    return [[f, name] for f, name in zip(selected_fields, default_output_names(selected_fields))]


def update_group_key_choices(selected_fields, current_group_key):
    selected_fields = selected_fields or []
    if not selected_fields:
        return gr.update(choices=[], value=None)
    value = current_group_key if current_group_key in selected_fields else selected_fields[0]
    return gr.update(choices=list(selected_fields), value=value)


def update_mapping_and_group_key(selected_fields, current_group_key):
    return (
        update_mapping_table(selected_fields),
        update_group_key_choices(selected_fields, current_group_key),
        None,
    )


def mapping_from_table(mapping_df) -> Tuple[List[str], Dict[str, str]]:
    """Selected fields and output names from the mapping table (DataFrame or rows)."""
    if mapping_df is None:
        return [], {}
    try:
        fields = [str(f) for f in mapping_df["Input Path"].tolist()]
        names = [str(n) for n in mapping_df["Output Name"].tolist()]
    except (TypeError, KeyError, AttributeError):
        fields = [str(row[0]) for row in mapping_df]
        names = [str(row[1]) for row in mapping_df]

    headers = {}
    for f, n in zip(fields, names):
        if f and n and n != f:
            headers[f] = n
    return [f for f in fields if f], headers


def build_report_config(mapping_df, group_key, mode, root_path) -> ReportConfig:
    fields, headers = mapping_from_table(mapping_df)
    if not fields:
        raise ConfigurationError("No fields selected.")
    return ReportConfig(
        fields=fields,
        group_key=group_key or fields[0],
        mode=mode or CARTESIAN,
        root_path=root_path or ROOT_PATH,
        headers=headers,
    ).validate()


def preview_report_handler(data, mapping_df, group_key=None, mode=None, root_path=None):
    if data is None:
        return None
    try:
        config = build_report_config(mapping_df, group_key, mode, root_path)
        records = resolve_records(data, config.root_path)
        rows = preview_rows(records, config, limit=3)
    except (ConfigurationError, FlatteningError) as e:
        logger.warning("Preview failed: %s", e)
        return None
    return rows_for_export(rows, config.fields, config.headers) or None


def export_report_handler(data, mapping_df, group_key, mode, output_format, file_name, root_path=None):
    if data is None:
        return None, "No data loaded."

    try:
        config = build_report_config(mapping_df, group_key, mode, root_path)
        stats = FlattenStats()
        rows = generate_rows_from_config(resolve_records(data, config.root_path), config, stats)
    except (ConfigurationError, FlatteningError) as e:
        return None, str(e)
    stats.log_summary()

    if not file_name or not file_name.strip():
        file_name = "report"

    ext = f".{output_format.lower()}"
    if not file_name.lower().endswith(ext):
        file_name += ext

    path = os.path.join(tempfile.gettempdir(), file_name)
    header = config.header_row()
    try:
        write_rows(path, header, rows_for_export(rows, config.fields, config.headers), output_format, config.worksheet_name)
    except (OSError, ValueError) as e:
        return None, f"Error during export: {str(e)}"

    return path, (
        f"Export successful! {len(rows)} rows from {stats.records_processed} records "
        f"({stats.rows_before_merge} before merge). Saved to {path}"
    )


def fields_for_root(data: Any, root_path: str) -> List[str]:
    if data is None:
        return []
    return discover_fields(resolve_records(data, root_path or ROOT_PATH))
