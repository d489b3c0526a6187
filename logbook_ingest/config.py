"""
Import settings loaded from YAML.

Sample ``logbook.yaml``
-----------------------
```yaml
# Substitute this value when aircraft/airports cannot be resolved.
unknown_sentinel: UNKNOWN
# false: reject rows missing aircraft/departure/arrival instead of defaulting.
infer_missing: true
# Hours; component durations above this are treated as corrupted.
duration_ceiling: 48
header_scan_limit: 500
warning_limit: 25
# Extra header spellings per logical field, tried before the built-ins.
aliases:
  total_time: ["Tot Time", "Hrs"]
  aircraft_registration: ["N-Number"]
```
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from .schema import FIELD_ALIASES, UNKNOWN, merge_field_aliases

load_dotenv()

CONFIG_ENV_KEY = "LOGBOOK_CONFIG"


class ConfigError(ValueError):
    """Raised when the YAML configuration is invalid."""


@dataclass
class ImportSettings:
    unknown_sentinel: str = UNKNOWN
    infer_missing: bool = True
    duration_ceiling: float = 48.0
    header_scan_limit: int = 500
    warning_limit: int = 25
    aliases: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(FIELD_ALIASES))


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"1", "true", "yes", "on", "0", "false", "no", "off"}:
        return value.strip().lower() in {"1", "true", "yes", "on"}
    raise ConfigError(f"`{key}` must be a boolean, got {value!r}")


def _parse_positive(value: Any, key: str, cast) -> Any:
    try:
        parsed = cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"`{key}` must be a number, got {value!r}") from exc
    if parsed <= 0:
        raise ConfigError(f"`{key}` must be positive, got {value!r}")
    return parsed


def _parse_aliases(value: Any) -> Dict[str, Tuple[str, ...]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError("`aliases` must be a mapping of field name to header spellings.")
    unknown = [k for k in value if k not in FIELD_ALIASES]
    if unknown:
        raise ConfigError(f"Unknown fields in `aliases`: {', '.join(sorted(map(str, unknown)))}")
    parsed: Dict[str, Tuple[str, ...]] = {}
    for field_name, spellings in value.items():
        if isinstance(spellings, str):
            spellings = [spellings]
        if not isinstance(spellings, list):
            raise ConfigError(f"Aliases for `{field_name}` must be a list of header names.")
        parsed[str(field_name)] = tuple(str(s) for s in spellings)
    return parsed


def settings_from_dict(raw: Dict[str, Any]) -> ImportSettings:
    if not isinstance(raw, dict):
        raise ConfigError("Configuration must be a YAML mapping.")

    defaults = ImportSettings()
    sentinel = raw.get("unknown_sentinel", defaults.unknown_sentinel)
    if not isinstance(sentinel, str) or not sentinel.strip():
        raise ConfigError("`unknown_sentinel` must be a non-empty string.")

    return ImportSettings(
        unknown_sentinel=sentinel.strip().upper(),
        infer_missing=_parse_bool(raw.get("infer_missing", defaults.infer_missing), "infer_missing"),
        duration_ceiling=_parse_positive(raw.get("duration_ceiling", defaults.duration_ceiling), "duration_ceiling", float),
        header_scan_limit=_parse_positive(raw.get("header_scan_limit", defaults.header_scan_limit), "header_scan_limit", int),
        warning_limit=_parse_positive(raw.get("warning_limit", defaults.warning_limit), "warning_limit", int),
        aliases=merge_field_aliases(_parse_aliases(raw.get("aliases"))),
    )


def load_settings(path: Optional[Path] = None) -> ImportSettings:
    """
    Load settings from ``path``, else ``$LOGBOOK_CONFIG``, else defaults.

    An explicitly requested file that does not exist is an error.
    """

    if path is None:
        env_path = os.getenv(CONFIG_ENV_KEY)
        if not env_path:
            return ImportSettings()
        path = Path(env_path)

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    return settings_from_dict(raw)
