from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypedDict

PALETTE_SIZE = 8

DEFAULT_PALETTE: tuple[str, ...] = (
    "#3794FF",
    "#89D185",
    "#CCA700",
    "#F14C4C",
    "#B180D7",
    "#4EC9B0",
    "#CE9178",
    "#D7BA7D",
)


class AnnotateSettings(TypedDict, total=False):
    default_comment_prefix: str
    debounce_ms: int
    palette: list[str]
    color_alpha: int
    border_color: str
    shortcut: str


class AppSettings(TypedDict, total=False):
    annotate: AnnotateSettings


@dataclass(slots=True, frozen=True)
class SettingsPaths:
    app_dir: Path
    filename: str = "settings.json"
    settings_file: Path = field(init=False)

    def __post_init__(self) -> None:
        app_dir = Path(self.app_dir).expanduser()
        object.__setattr__(self, "app_dir", app_dir)
        object.__setattr__(self, "settings_file", app_dir / self.filename)


def default_app_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "annotate"


def default_annotate_settings() -> AnnotateSettings:
    defaults: AnnotateSettings = {
        "default_comment_prefix": "// ",
        "debounce_ms": 500,
        "palette": list(DEFAULT_PALETTE),
        "color_alpha": 96,
        "border_color": "#ffffff50",
        "shortcut": "Ctrl+Alt+A",
    }
    return deepcopy(defaults)


def default_app_settings() -> AppSettings:
    return {"annotate": default_annotate_settings()}
