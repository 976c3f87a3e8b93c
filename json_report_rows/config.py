"""Report configuration: which fields, grouped how, written where.

Config files are read with PyYAML; JSON files load too since JSON is a YAML
subset. A file may be a bare list of dot paths or a mapping such as::

    fields:
      - incidentId
      - responders.agency
      - responders.personnel.name
    group-key: incidentId
    mode: cartesian
    headers:
      responders.agency: Agency
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import yaml

from .errors import ConfigurationError
from .expansion import CARTESIAN, DEFAULT_MAX_DEPTH, EXPANSION_MODES
from .paths import FieldPath, split_path
from .records import DEFAULT_SEPARATOR, ROOT_PATH

logger = logging.getLogger(__name__)

DEFAULT_WORKSHEET_NAME = 'Report'

_KEY_ALIASES = {
    'group-key': 'group_key',
    'parent-key': 'group_key',
    'parentKey': 'group_key',
    'owner-aware-merge': 'owner_aware_merge',
    'max-depth': 'max_depth',
    'root-path': 'root_path',
    'worksheet-name': 'worksheet_name',
    'worksheetName': 'worksheet_name',
    'log-level': 'log_level',
}


def parse_field_config(fields: Sequence[str]) -> List[Tuple[str, FieldPath]]:
    """Validate dot paths and return (name, segments) pairs in config order.

    Later duplicates (same segments) are dropped with a warning.
    """
    if isinstance(fields, str) or not fields:
        raise ConfigurationError("Field configuration must be a non-empty list of dot paths.")

    parsed: List[Tuple[str, FieldPath]] = []
    seen = set()
    for raw in fields:
        if not isinstance(raw, str):
            raise ConfigurationError(f"Field paths must be strings, got {raw!r}.")
        path = split_path(raw)
        if not path:
            raise ConfigurationError(f"Empty field path in configuration: {raw!r}.")
        if path in seen:
            logger.warning("Ignoring duplicate field %r", raw)
            continue
        seen.add(path)
        parsed.append((raw, path))
    return parsed


def resolve_group_key(parsed: Sequence[Tuple[str, FieldPath]], group_key: Optional[str]) -> FieldPath:
    if not group_key:
        raise ConfigurationError("A group key path is required.")
    path = split_path(group_key)
    if not path:
        raise ConfigurationError(f"Invalid group key path: {group_key!r}.")
    if path not in {p for _, p in parsed}:
        raise ConfigurationError(f"Group key {group_key!r} is not one of the configured fields.")
    return path


@dataclass
class ReportConfig:
    fields: List[str]
    group_key: Optional[str] = None
    mode: str = CARTESIAN
    separator: str = DEFAULT_SEPARATOR
    owner_aware_merge: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH
    root_path: str = ROOT_PATH
    headers: Dict[str, str] = field(default_factory=dict)
    worksheet_name: str = DEFAULT_WORKSHEET_NAME
    log_level: Optional[str] = None

    def __post_init__(self):
        if self.group_key is None and self.fields:
            self.group_key = self.fields[0]

    def validate(self) -> 'ReportConfig':
        parsed = parse_field_config(self.fields)
        resolve_group_key(parsed, self.group_key)
        if self.mode not in EXPANSION_MODES:
            raise ConfigurationError(f"Unknown mode {self.mode!r}; expected one of {', '.join(EXPANSION_MODES)}.")
        if not isinstance(self.max_depth, int) or self.max_depth < 1:
            raise ConfigurationError("max-depth must be a positive integer.")
        if not isinstance(self.headers, dict):
            raise ConfigurationError("headers must map field paths to column names.")
        return self

    def header_row(self) -> List[str]:
        return [self.headers.get(f, f) for f in self.fields]

    def with_overrides(self, **overrides: Any) -> 'ReportConfig':
        """Copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if 'fields' in changes and 'group_key' not in changes and self.group_key not in changes['fields']:
            changes['group_key'] = None
        return replace(self, **changes)


def config_from_mapping(raw: Union[Dict[str, Any], List[Any]]) -> ReportConfig:
    if isinstance(raw, list):
        return ReportConfig(fields=list(raw)).validate()
    if not isinstance(raw, dict):
        raise ConfigurationError("Config must be a list of fields or a mapping.")

    values: Dict[str, Any] = {}
    for key, value in raw.items():
        name = _KEY_ALIASES.get(key, str(key).replace('-', '_'))
        values[name] = value

    known = set(ReportConfig.__dataclass_fields__)
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(f"Unknown config keys: {', '.join(unknown)}")
    if 'fields' not in values:
        raise ConfigurationError("Config is missing 'fields'.")
    if values.get('headers') is None:
        values.pop('headers', None)
    return ReportConfig(**values).validate()


def load_report_config(path: Union[str, Path]) -> ReportConfig:
    path = Path(path)
    try:
        with path.open('r', encoding='utf-8') as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse config file {path}: {e}")
    except (FileNotFoundError, OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}")

    if raw is None:
        raise ConfigurationError(f"Config file {path} is empty.")
    return config_from_mapping(raw)
