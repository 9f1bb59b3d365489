from __future__ import annotations

from typing import Iterable

_EDITOR_BACKGROUND = "#252526"
_EDITOR_FOREGROUND = "#d4d4d4"
_FOLD_REFRESH_MS = 140
_OVERLAY_HOVER_DELAY_MS = 180
_OVERLAY_HOVER_SEPARATOR = "<hr>"
_TOOLTIP_STYLE_MARKER = "/* annotate-dark-tooltip */"
_TOOLTIP_QSS = f"""
{_TOOLTIP_STYLE_MARKER}
QToolTip {{
    background-color: #2f2f2f;
    color: #e8e8e8;
    border: 1px solid #4a4a4a;
    padding: 6px;
}}
"""


def _clamp_columns(start: int, end: int, line_length: int) -> tuple[int, int] | None:
    """Clip ``[start, end)`` to a line of ``line_length`` characters."""
    length = max(0, int(line_length))
    lo = max(0, min(int(start), length))
    hi = max(0, min(int(end), length))
    if hi <= lo:
        return None
    return lo, hi


def _join_hover_html(parts: Iterable[str]) -> str:
    seen: list[str] = []
    for part in parts:
        text = str(part or "").strip()
        if text and text not in seen:
            seen.append(text)
    return _OVERLAY_HOVER_SEPARATOR.join(seen)


__all__ = [name for name in globals() if not name.startswith("__")]
