"""Data records shared by the annotation parser, scanner and resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

ERROR_COLOR = "red"
FULL_LINE_END = 9999
DEFAULT_COLOR_PREFIX = "default"

RangeFn = Callable[[int, int], tuple[int, int]]


def identity_range(start: int, end: int) -> tuple[int, int]:
    return start, end


@dataclass(slots=True)
class Annotation:
    start: int
    end: int
    color: Optional[str] = None
    text: Optional[str] = None


def error_annotation(message: str) -> Annotation:
    return Annotation(start=0, end=FULL_LINE_END, color=ERROR_COLOR, text=message)


@dataclass(slots=True)
class AnnotationCfg:
    range_fn: RangeFn = identity_range
    clamp: Optional[tuple[int, int]] = None

    def snapshot(self) -> "AnnotationCfg":
        return AnnotationCfg(range_fn=self.range_fn, clamp=self.clamp)


@dataclass(slots=True)
class AnchorBlock:
    line: int
    annotations: list[Annotation] = field(default_factory=list)
    cfg: AnnotationCfg = field(default_factory=AnnotationCfg)


@dataclass(frozen=True, slots=True)
class ResolvedDecoration:
    line: int
    start: int
    end: int
    color: str
    hover: Optional[str] = None
