from __future__ import annotations

import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

_LOG = logging.getLogger(__name__)


class SettingsStoreError(RuntimeError):
    """Raised when the settings file cannot be written."""


def deep_merge_defaults(data: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Fill in missing keys from defaults, recursing into nested objects."""
    merged = deepcopy(dict(data))
    for key, default_value in defaults.items():
        if key not in merged:
            merged[key] = deepcopy(default_value)
        elif isinstance(merged[key], dict) and isinstance(default_value, dict):
            merged[key] = deep_merge_defaults(merged[key], default_value)
    return merged


def dot_get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    current: Any = data
    for part in str(key or "").split("."):
        if not part:
            continue
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def dot_set(data: dict[str, Any], key: str, value: Any) -> None:
    parts = [part for part in str(key or "").split(".") if part]
    if not parts:
        raise ValueError("Key cannot be empty.")
    current = data
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


class JsonSettingsStore:
    """JSON file with defaults merged in and dot-key access."""

    def __init__(self, path: Path, defaults: Mapping[str, Any], *, persistent: bool = True) -> None:
        self.path = Path(path)
        self.defaults: dict[str, Any] = deepcopy(dict(defaults))
        self.data: dict[str, Any] = deep_merge_defaults({}, self.defaults)
        self.dirty = False
        self.last_error: str | None = None
        self.persistent = bool(persistent)

    def load(self) -> dict[str, Any]:
        self.last_error = None
        if not self.persistent or not self.path.exists():
            self.data = deep_merge_defaults({}, self.defaults)
            self.dirty = False
            return self.data

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            # An unreadable file falls back to defaults and is left untouched on disk.
            self.last_error = str(exc)
            _LOG.warning("Could not read settings '%s': %s", self.path, exc)
            raw = {}
        if not isinstance(raw, dict):
            self.last_error = (
                f"Settings root in '{self.path}' must be a JSON object, found {type(raw).__name__}."
            )
            _LOG.warning(self.last_error)
            raw = {}

        self.data = deep_merge_defaults(raw, self.defaults)
        self.dirty = False
        return self.data

    def save(self) -> None:
        if not self.persistent:
            self.dirty = False
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self.data, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            raise SettingsStoreError(f"Could not write settings file '{self.path}': {exc}") from exc
        self.dirty = False
        self.last_error = None

    def get(self, key: str, default: Any = None) -> Any:
        return dot_get(self.data, key, default)

    def set(self, key: str, value: Any) -> bool:
        if self.get(key) == value:
            return False
        dot_set(self.data, key, value)
        self.dirty = True
        return True

    def snapshot(self) -> dict[str, Any]:
        return deepcopy(self.data)
