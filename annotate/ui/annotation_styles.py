from __future__ import annotations

import itertools
import logging
import re
from dataclasses import dataclass

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor, QTextCharFormat

from annotate.services.annotation_models import DEFAULT_COLOR_PREFIX
from annotate.settings_models import AnnotateSettings, default_annotate_settings

_LOG = logging.getLogger(__name__)

_CSS_HEX_RE = re.compile(r"^#(?P<hex>[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_DEFAULT_SLOT_RE = re.compile(rf"^{DEFAULT_COLOR_PREFIX}(?P<slot>\d*)$")


def css_color(token: str, *, alpha: int) -> QColor:
    """Parse ``#rgb``, ``#rrggbb``, ``#rrggbbaa`` (CSS order) or a color name.

    ``alpha`` applies whenever the token does not carry its own. Unknown
    tokens yield an invalid ``QColor``.
    """
    text = str(token or "").strip()
    match = _CSS_HEX_RE.match(text)
    if match:
        digits = match.group("hex")
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        red, green, blue = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
        own_alpha = int(digits[6:8], 16) if len(digits) == 8 else alpha
        return QColor(red, green, blue, own_alpha)
    if text and QColor.isValidColorName(text):
        color = QColor(text)
        color.setAlpha(alpha)
        return color
    return QColor()


@dataclass(eq=False, slots=True)
class AnnotationStyle:
    """Render-style handle for one annotation color."""

    color: str
    char_format: QTextCharFormat
    serial: int

    def __repr__(self) -> str:
        return f"AnnotationStyle({self.color!r}, #{self.serial})"


class AnnotationStyleFactory:
    def __init__(self, settings: AnnotateSettings | None = None):
        self._serials = itertools.count(1)
        self._cfg: AnnotateSettings = default_annotate_settings()
        self.update_settings(settings or {})

    def update_settings(self, settings: AnnotateSettings) -> None:
        merged = default_annotate_settings()
        if isinstance(settings, dict):
            merged.update({key: value for key, value in settings.items() if key in merged})
        self._cfg = merged

    def background_for(self, color: str) -> QColor:
        alpha = int(self._cfg.get("color_alpha", 96))
        slot = _DEFAULT_SLOT_RE.match(str(color or ""))
        if slot:
            palette = list(self._cfg.get("palette") or [])
            idx = int(slot.group("slot") or 0)
            if palette:
                return css_color(palette[idx % len(palette)], alpha=alpha)
        return css_color(color, alpha=alpha)

    def create(self, color: str) -> AnnotationStyle:
        fmt = QTextCharFormat()
        background = self.background_for(color)
        if background.isValid():
            fmt.setBackground(background)
        else:
            _LOG.debug("Unknown annotation color %r, rendering border only", color)
            fmt.setBackground(QColor(Qt.GlobalColor.transparent))
        border = css_color(str(self._cfg.get("border_color") or ""), alpha=255)
        if border.isValid():
            fmt.setUnderlineStyle(QTextCharFormat.UnderlineStyle.SingleUnderline)
            fmt.setUnderlineColor(border)
        style = AnnotationStyle(color=color, char_format=fmt, serial=next(self._serials))
        _LOG.debug("Created %r", style)
        return style

    def release(self, style: AnnotationStyle) -> None:
        _LOG.debug("Released %r", style)
        style.char_format = QTextCharFormat()
