from __future__ import annotations

from annotate.services.annotation_parser import classify_line


def annotation_fold_ranges(source_text: str) -> list[tuple[int, int]]:
    """Fold each run of annotation lines into the line above it.

    Ranges are 1-based ``(start_line, end_line)`` pairs, the same shape the
    editor's language fold providers return. A block on the first line
    folds from line 1.
    """
    lines = str(source_text or "").splitlines()
    ranges: list[tuple[int, int]] = []
    fold_start: int | None = None

    for idx, line in enumerate(lines, start=1):
        if classify_line(line) == "annotation":
            if fold_start is None:
                fold_start = max(1, idx - 1)
            continue
        if fold_start is not None:
            if idx - 1 > fold_start:
                ranges.append((fold_start, idx - 1))
            fold_start = None

    if fold_start is not None and len(lines) > fold_start:
        ranges.append((fold_start, len(lines)))
    return ranges
