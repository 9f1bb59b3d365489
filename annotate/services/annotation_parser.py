"""Recognizes ``@annotate`` and ``@annotate-cfg`` directives in comment lines.

Grammar::

    annotation := "@annotate" ws "[" ws INT ws "-" ws INT ws "]" ws color? ws text?
    color      := "[" [#A-Za-z0-9]+ "]" | bare-color
    config     := "@annotate-cfg" ( "[" key "=" value "]" )+

``value`` runs to the matching ``]`` so nested brackets/braces are allowed.
"""

from __future__ import annotations

import logging
import re
from typing import Literal, Optional

from PySide6.QtGui import QColor

from annotate.services.annotation_models import Annotation, AnnotationCfg, error_annotation
from annotate.services.range_expression import RangeExpressionError, evaluate_clamp, evaluate_range_fn

_LOG = logging.getLogger(__name__)

# Only lines whose first non-whitespace character is one of these are parsed.
COMMENT_MARKERS = frozenset("/#*@>")
ANNOTATE_KEYWORD = "@annotate"
CONFIG_KEYWORD = "@annotate-cfg"

LineKind = Literal["annotation", "config", "inert"]

_COLOR_TOKEN_CHARS = frozenset("#abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789")
_BARE_HEX_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_DEFAULT_SLOT_RE = re.compile(r"^default\d+$")
_CLOSERS = {"]": "[", ")": "(", "}": "{"}


def first_non_whitespace_index(text: str) -> int:
    line = str(text or "")
    return len(line) - len(line.lstrip())


def is_comment_line(text: str) -> bool:
    line = str(text or "")
    idx = first_non_whitespace_index(line)
    return idx < len(line) and line[idx] in COMMENT_MARKERS


def is_bare_color(token: str) -> bool:
    word = str(token or "")
    if _BARE_HEX_RE.match(word) or _DEFAULT_SLOT_RE.match(word):
        return True
    return word.isalpha() and word.islower() and QColor.isValidColorName(word)


class _LineReader:
    def __init__(self, text: str, pos: int):
        self.text = text
        self.pos = pos

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def take(self, ch: str) -> bool:
        if self.text.startswith(ch, self.pos):
            self.pos += len(ch)
            return True
        return False

    def read_while(self, allowed: frozenset[str]) -> str:
        begin = self.pos
        while self.pos < len(self.text) and self.text[self.pos] in allowed:
            self.pos += 1
        return self.text[begin:self.pos]

    def read_int(self) -> Optional[int]:
        digits = self.read_while(frozenset("0123456789"))
        return int(digits) if digits else None

    def rest(self) -> str:
        return self.text[self.pos:]


def _annotation_at(text: str, pos: int) -> Optional[Annotation]:
    reader = _LineReader(text, pos)
    reader.skip_ws()
    if not reader.take("["):
        return None
    reader.skip_ws()
    start = reader.read_int()
    reader.skip_ws()
    if start is None or not reader.take("-"):
        return None
    reader.skip_ws()
    end = reader.read_int()
    reader.skip_ws()
    if end is None or not reader.take("]"):
        return None

    color: Optional[str] = None
    mark = reader.pos
    reader.skip_ws()
    if reader.take("["):
        token = reader.read_while(_COLOR_TOKEN_CHARS)
        if token and reader.take("]"):
            color = token
        else:
            reader.pos = mark
    reader.skip_ws()
    hover = reader.rest().rstrip()

    if color is None and hover:
        parts = hover.split(None, 1)
        if is_bare_color(parts[0]):
            color = parts[0]
            hover = parts[1] if len(parts) > 1 else ""
    return Annotation(start=start, end=end, color=color, text=hover or None)


def parse_annotation(text: str) -> Optional[Annotation]:
    """Return the first ``@annotate [a-b] ...`` directive on the line, if any."""
    line = str(text or "")
    idx = line.find(ANNOTATE_KEYWORD)
    while idx >= 0:
        annotation = _annotation_at(line, idx + len(ANNOTATE_KEYWORD))
        if annotation is not None:
            return annotation
        idx = line.find(ANNOTATE_KEYWORD, idx + 1)
    return None


def _matching_close(text: str, pos: int) -> int:
    stack: list[str] = []
    for idx in range(pos, len(text)):
        ch = text[idx]
        if ch in "[({":
            stack.append(ch)
        elif ch in _CLOSERS:
            if not stack:
                return idx if ch == "]" else -1
            if stack[-1] != _CLOSERS[ch]:
                return -1
            stack.pop()
    return -1


def parse_config_entries(text: str) -> Optional[list[tuple[str, str]]]:
    """Split an ``@annotate-cfg`` line into ``(key, value)`` pairs, left to right.

    Returns ``None`` when the line carries no config marker.
    """
    line = str(text or "")
    idx = line.find(CONFIG_KEYWORD)
    if idx < 0:
        return None
    entries: list[tuple[str, str]] = []
    pos = idx + len(CONFIG_KEYWORD)
    while True:
        open_idx = line.find("[", pos)
        if open_idx < 0:
            break
        eq_idx = line.find("=", open_idx + 1)
        if eq_idx < 0:
            break
        close_idx = _matching_close(line, eq_idx + 1)
        if close_idx < 0:
            break
        entries.append((line[open_idx + 1:eq_idx].strip(), line[eq_idx + 1:close_idx].strip()))
        pos = close_idx + 1
    return entries


def apply_config_entries(entries: list[tuple[str, str]], cfg: AnnotationCfg) -> list[Annotation]:
    """Update ``cfg`` in place; problems come back as error annotations."""
    errors: list[Annotation] = []
    for key, value in entries:
        try:
            if key == "rangeFn":
                cfg.range_fn = evaluate_range_fn(value)
            elif key == "clamp":
                cfg.clamp = evaluate_clamp(value)
            else:
                errors.append(error_annotation(f"Unknown field: {key}"))
        except RangeExpressionError as exc:
            _LOG.debug("Rejected %s value %r: %s", key, value, exc)
            errors.append(error_annotation(f"Error: {exc}"))
    return errors


def classify_line(text: str) -> LineKind:
    if not is_comment_line(text):
        return "inert"
    if parse_annotation(text) is not None:
        return "annotation"
    if CONFIG_KEYWORD in text:
        return "config"
    return "inert"


def parse_comment_line(text: str, cfg: AnnotationCfg) -> tuple[LineKind, list[Annotation]]:
    """Parse one comment line, updating ``cfg`` for config directives.

    The returned annotations are the ones to queue for the next anchor: the
    parsed annotation, or the error markers a config line produced.
    """
    annotation = parse_annotation(text)
    if annotation is not None:
        return "annotation", [annotation]
    entries = parse_config_entries(text)
    if entries is None:
        return "inert", []
    return "config", apply_config_entries(entries, cfg)


__all__ = [
    "COMMENT_MARKERS",
    "ANNOTATE_KEYWORD",
    "CONFIG_KEYWORD",
    "LineKind",
    "first_non_whitespace_index",
    "is_comment_line",
    "is_bare_color",
    "parse_annotation",
    "parse_config_entries",
    "apply_config_entries",
    "classify_line",
    "parse_comment_line",
]
