"""Code folding update helpers for CodeEditor."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .editor import CodeEditor

_LOG = logging.getLogger(__name__)

FoldRegion = tuple[int, int]
FoldProvider = Callable[[str], list[FoldRegion]]


def normalize_fold_ranges(ranges: list[tuple[int, int]], line_count: int) -> list[tuple[int, int]]:
    """Clip 1-based ranges to the document and keep the longest per start line."""
    merged: dict[int, int] = {}
    max_line = max(0, int(line_count))
    for start_raw, end_raw in ranges:
        try:
            start = int(start_raw)
            end = int(end_raw)
        except (TypeError, ValueError):
            continue
        if start < 1:
            start = 1
        if end > max_line:
            end = max_line
        if end <= start:
            continue
        prev = merged.get(start)
        if prev is None or end > prev:
            merged[start] = end
    return sorted(merged.items(), key=lambda item: (item[0], item[1]))


def compute_folding_regions(editor: "CodeEditor") -> list[FoldRegion]:
    provider = editor.fold_provider()
    if provider is None:
        return []
    raw_ranges = provider(editor.toPlainText())
    line_count = max(1, editor.document().blockCount())
    return normalize_fold_ranges(list(raw_ranges or []), line_count)


def update_folding(editor: "CodeEditor") -> None:
    if editor.fold_provider() is None:
        editor._clear_folding()
        editor.updateLineNumberAreaWidth(0)
        editor.lineNumberArea.update()
        return

    fold_ranges: dict[int, int] = {}
    for start_line, end_line in compute_folding_regions(editor):
        start_block = int(start_line) - 1
        end_block = int(end_line) - 1
        if end_block <= start_block:
            continue
        prev = fold_ranges.get(start_block)
        if prev is None or end_block > prev:
            fold_ranges[start_block] = end_block
    editor._fold_ranges = fold_ranges
    editor._folded_starts = {line for line in editor._folded_starts if line in editor._fold_ranges}
    _LOG.debug("Fold regions: %d", len(fold_ranges))
    editor._apply_fold_visibility()


__all__ = [
    "FoldRegion",
    "FoldProvider",
    "normalize_fold_ranges",
    "compute_folding_regions",
    "update_folding",
]
