from __future__ import annotations

import os
import re
from copy import deepcopy
from pathlib import Path
from typing import Any

from annotate.settings_models import (
    DEFAULT_PALETTE,
    PALETTE_SIZE,
    AnnotateSettings,
    SettingsPaths,
    default_annotate_settings,
    default_app_dir,
    default_app_settings,
)
from annotate.settings_store import JsonSettingsStore, deep_merge_defaults

SETTINGS_PATH_ENV = "ANNOTATE_SETTINGS_PATH"

_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def _normalize_palette(raw: object) -> list[str]:
    entries = list(raw) if isinstance(raw, (list, tuple)) else []
    palette: list[str] = []
    for idx in range(PALETTE_SIZE):
        value = str(entries[idx]).strip() if idx < len(entries) and entries[idx] is not None else ""
        palette.append(value or DEFAULT_PALETTE[idx])
    return palette


class SettingsManager:
    def __init__(
        self,
        app_dir: str | Path | None = None,
        *,
        filename: str = "settings.json",
        persistent: bool = True,
    ) -> None:
        override = os.environ.get(SETTINGS_PATH_ENV, "").strip()
        if override and app_dir is None:
            override_path = Path(override).expanduser()
            self.paths = SettingsPaths(app_dir=override_path.parent, filename=override_path.name)
        else:
            self.paths = SettingsPaths(
                app_dir=Path(app_dir) if app_dir is not None else default_app_dir(),
                filename=filename,
            )
        self.store = JsonSettingsStore(self.paths.settings_file, default_app_settings(), persistent=persistent)

    @property
    def settings_path(self) -> Path:
        return self.paths.settings_file

    def load_all(self) -> None:
        self.store.load()
        self._normalize_annotate_settings()

    def save_all(self) -> None:
        # Never replace a file we failed to parse with regenerated defaults.
        if self.store.last_error:
            return
        self.store.save()

    def load_errors(self) -> list[str]:
        error = str(self.store.last_error or "").strip()
        return [error] if error else []

    def get(self, key: str, *, default: Any = None) -> Any:
        return self.store.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if self.store.set(key, value):
            self._normalize_annotate_settings()

    def annotate_settings(self) -> AnnotateSettings:
        return deepcopy(self.store.get("annotate", default_annotate_settings()))

    def default_comment_prefix(self) -> str:
        return str(self.get("annotate.default_comment_prefix", default="// "))

    def _normalize_annotate_settings(self) -> bool:
        data = self.store.data
        before = deepcopy(data.get("annotate"))

        cfg = data.get("annotate")
        if not isinstance(cfg, dict):
            cfg = {}
        cfg = deep_merge_defaults(cfg, default_annotate_settings())

        prefix = cfg.get("default_comment_prefix")
        cfg["default_comment_prefix"] = prefix if isinstance(prefix, str) else "// "

        try:
            cfg["debounce_ms"] = max(0, min(60000, int(cfg.get("debounce_ms", 500))))
        except (TypeError, ValueError):
            cfg["debounce_ms"] = 500

        try:
            cfg["color_alpha"] = max(0, min(255, int(cfg.get("color_alpha", 96))))
        except (TypeError, ValueError):
            cfg["color_alpha"] = 96

        cfg["palette"] = _normalize_palette(cfg.get("palette"))

        border = str(cfg.get("border_color") or "").strip()
        cfg["border_color"] = border if _HEX_COLOR_RE.match(border) else "#ffffff50"

        cfg["shortcut"] = str(cfg.get("shortcut") or "").strip()

        data["annotate"] = cfg
        return before != cfg
