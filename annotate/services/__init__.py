"""Annotation core without widgets: parsing, range expressions, scanning, resolving."""

from .annotation_models import AnchorBlock, Annotation, AnnotationCfg, ResolvedDecoration
from .annotation_parser import classify_line, is_comment_line, parse_annotation, parse_comment_line
from .annotation_resolver import resolve_anchor_block, resolve_blocks
from .document_scanner import scan_document
from .range_expression import RangeExpressionError, evaluate_clamp, evaluate_range_fn

__all__ = [
    "AnchorBlock",
    "Annotation",
    "AnnotationCfg",
    "ResolvedDecoration",
    "RangeExpressionError",
    "classify_line",
    "evaluate_clamp",
    "evaluate_range_fn",
    "is_comment_line",
    "parse_annotation",
    "parse_comment_line",
    "resolve_anchor_block",
    "resolve_blocks",
    "scan_document",
]
