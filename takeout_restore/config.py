"""Settings: optional JSON file layered over built-in defaults."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .scanner import DEFAULT_SIDECAR_SUFFIXES

SETTINGS_FILENAME = "restore_settings.json"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class RestoreSettings:
    workers: int = 4
    dry_run: bool = False
    backup: bool = False
    verify: bool = False
    sidecar_suffixes: Tuple[str, ...] = field(default=DEFAULT_SIDECAR_SUFFIXES)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def merged(self, **overrides) -> "RestoreSettings":
        """Copy with every override that is not None applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _coerce(name: str, value: Any, default: Any) -> Any:
    if name == "workers":
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
    elif name in ("dry_run", "backup", "verify"):
        if isinstance(value, bool):
            return value
    elif name == "sidecar_suffixes":
        if isinstance(value, list) and value and all(isinstance(s, str) and s.startswith(".") for s in value):
            return tuple(value)
    elif name == "log_level":
        if isinstance(value, str) and value.upper() in _LOG_LEVELS:
            return value.upper()
    elif name == "log_file":
        if value is None or isinstance(value, str):
            return value
    logging.warning("Ignoring invalid setting %s=%r", name, value)
    return default


def parse_settings(raw: Dict[str, Any]) -> RestoreSettings:
    base = RestoreSettings()
    values = {}
    for f in fields(RestoreSettings):
        if f.name in raw:
            values[f.name] = _coerce(f.name, raw[f.name], getattr(base, f.name))
    return replace(base, **values)


def load_settings(path: str | Path | None = None) -> RestoreSettings:
    """Read settings from `path`, or ``restore_settings.json`` in the working directory.

    An explicit `path` must exist. The implicit file is optional; without it
    the defaults apply. A file that is not a JSON object is ignored with a
    warning.
    """
    if path is None:
        candidate = Path.cwd() / SETTINGS_FILENAME
        if not candidate.exists():
            return RestoreSettings()
    else:
        candidate = Path(path)
        if not candidate.exists():
            raise FileNotFoundError(f"Settings file not found: {candidate}")
    try:
        raw = json.loads(candidate.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logging.warning("Could not read settings %s: %s", candidate, exc)
        return RestoreSettings()
    if not isinstance(raw, dict):
        logging.warning("Settings file %s is not a JSON object, using defaults", candidate)
        return RestoreSettings()
    return parse_settings(raw)
