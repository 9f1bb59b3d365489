"""Template text for the "annotate selection" command."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from annotate.services.annotation_parser import classify_line

CARET_MARKER = "$0"


@dataclass(frozen=True, slots=True)
class AnnotationSnippet:
    line: int  # 0-based line the snippet is inserted before
    text: str  # full inserted text, including the trailing newline
    caret_offset: int  # caret position inside ``text`` after insertion


def _expand(template: str) -> tuple[str, int]:
    caret = template.index(CARET_MARKER)
    return template.replace(CARET_MARKER, "", 1), caret


def snippet_insert_line(lines: Sequence[str], selection_line: int) -> int:
    """Line after ``selection_line``, skipping annotation lines already below it.

    Appending behind existing directives keeps their order, and with it the
    default colors they were assigned.
    """
    line = selection_line + 1
    while line < len(lines) and classify_line(lines[line]) == "annotation":
        line += 1
    return line


def build_annotation_snippet(
    lines: Sequence[str],
    *,
    comment_prefix: str,
    start_line: int,
    start_column: int,
    end_line: int,
    end_column: int,
) -> AnnotationSnippet:
    """Build the directive for a selection.

    An empty selection yields ``@annotate []`` with the caret inside the
    brackets. A selection spanning lines is cut at the end of its first line.
    """
    prefix = str(comment_prefix or "")
    if start_line == end_line and start_column == end_column:
        template = f"{prefix}@annotate [{CARET_MARKER}]\n"
    else:
        if start_line != end_line:
            end_column = len(lines[start_line]) if 0 <= start_line < len(lines) else start_column
        template = f"{prefix}@annotate [{start_column}-{end_column}] {CARET_MARKER}\n"
    text, caret = _expand(template)
    return AnnotationSnippet(line=snippet_insert_line(lines, start_line), text=text, caret_offset=caret)
