"""Single-pass scan that groups directive comments with their anchor line."""

from __future__ import annotations

import logging
from typing import Iterable

from annotate.services.annotation_models import AnchorBlock, Annotation, AnnotationCfg
from annotate.services.annotation_parser import is_comment_line, parse_comment_line

_LOG = logging.getLogger(__name__)


def scan_document(lines: Iterable[str]) -> list[AnchorBlock]:
    """Return one :class:`AnchorBlock` per anchor line that has annotations.

    An annotation block attaches to the last non-comment line *above* it.
    Blocks at the top of the document have no such line and are dropped.
    Config directives stay active for the rest of the scan unless overridden.
    """
    blocks: list[AnchorBlock] = []
    pending: list[Annotation] = []
    cfg = AnnotationCfg()
    anchor_line: int | None = None
    line_count = 0

    for line_no, text in enumerate(lines):
        line_count += 1
        if is_comment_line(text):
            _kind, produced = parse_comment_line(text, cfg)
            pending.extend(produced)
            continue

        if pending:
            if anchor_line is not None:
                blocks.append(AnchorBlock(line=anchor_line, annotations=pending, cfg=cfg.snapshot()))
            else:
                _LOG.debug("Dropping %d annotation(s) above the first code line", len(pending))
            pending = []
        anchor_line = line_no

    if pending and anchor_line is not None:
        blocks.append(AnchorBlock(line=anchor_line, annotations=pending, cfg=cfg.snapshot()))

    _LOG.debug("Scanned %d line(s), %d anchor block(s)", line_count, len(blocks))
    return blocks
