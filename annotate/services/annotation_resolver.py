from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional, Protocol

from annotate.services.annotation_models import (
    DEFAULT_COLOR_PREFIX,
    AnchorBlock,
    Annotation,
    AnnotationCfg,
    ResolvedDecoration,
    error_annotation,
)
from annotate.services.range_expression import RangeExpressionError

_LOG = logging.getLogger(__name__)

DEFAULT_PALETTE_SLOTS = 8


class DecorationSink(Protocol):
    def record_decoration(self, color: str, decoration: ResolvedDecoration) -> None: ...


def transform_annotation(annotation: Annotation, cfg: AnnotationCfg) -> Optional[Annotation]:
    """Apply range function and clamp.

    Config error markers are transformed like any other annotation. Returns
    ``None`` for an empty range, or a full-line error marker when the range
    function fails.
    """
    try:
        start, end = cfg.range_fn(annotation.start, annotation.end)
    except RangeExpressionError as exc:
        return error_annotation(f"Error: {exc}")
    if cfg.clamp is not None:
        start = max(start, cfg.clamp[0])
        end = min(end, cfg.clamp[1])
    if end <= start:
        return None
    return replace(annotation, start=start, end=end)


def resolve_anchor_block(block: AnchorBlock, sink: DecorationSink) -> list[ResolvedDecoration]:
    resolved: list[ResolvedDecoration] = []
    default_idx = 0
    for annotation in block.annotations:
        final = transform_annotation(annotation, block.cfg)
        if final is None:
            continue
        color = final.color or f"{DEFAULT_COLOR_PREFIX}{default_idx}"
        decoration = ResolvedDecoration(
            line=block.line,
            start=final.start,
            end=final.end,
            color=color,
            hover=final.text or None,
        )
        sink.record_decoration(color, decoration)
        resolved.append(decoration)
        default_idx = (default_idx + 1) % DEFAULT_PALETTE_SLOTS
    return resolved


def resolve_blocks(blocks: Iterable[AnchorBlock], sink: DecorationSink) -> list[ResolvedDecoration]:
    resolved: list[ResolvedDecoration] = []
    for block in blocks:
        resolved.extend(resolve_anchor_block(block, sink))
    _LOG.debug("Resolved %d decoration(s)", len(resolved))
    return resolved
