"""Color → style-handle registry with per-cycle decoration buckets."""

from __future__ import annotations

import logging
from typing import Callable, Generic, Hashable, Optional, TypeVar

from annotate.services.annotation_models import ResolvedDecoration

_LOG = logging.getLogger(__name__)

HandleT = TypeVar("HandleT", bound=Hashable)
ApplyFn = Callable[[HandleT, list[ResolvedDecoration]], None]


class RenderStateManager(Generic[HandleT]):
    """Owns one style handle per color and the decorations queued for it.

    A cycle is ``begin_cycle()``, any number of ``record_decoration()`` and
    ``commit_cycle()``. A handle whose bucket stays empty for a whole cycle
    is applied once with an empty list and then released, so colors that
    disappear from the document do not keep their handles alive.
    """

    def __init__(
        self,
        create_style: Callable[[str], HandleT],
        release_style: Optional[Callable[[HandleT], None]] = None,
    ):
        self._create_style = create_style
        self._release_style = release_style
        self._handle_by_color: dict[str, HandleT] = {}
        self._bucket_by_handle: dict[HandleT, list[ResolvedDecoration]] = {}

    def __len__(self) -> int:
        return len(self._handle_by_color)

    def colors(self) -> list[str]:
        return list(self._handle_by_color)

    def handle_for(self, color: str) -> Optional[HandleT]:
        return self._handle_by_color.get(color)

    def begin_cycle(self) -> None:
        # Drop anything recorded by a cycle that never committed.
        for bucket in self._bucket_by_handle.values():
            bucket.clear()

    def record_decoration(self, color: str, decoration: ResolvedDecoration) -> None:
        handle = self._handle_by_color.get(color)
        if handle is None:
            handle = self._create_style(color)
            self._handle_by_color[color] = handle
            self._bucket_by_handle[handle] = []
        self._bucket_by_handle[handle].append(decoration)

    def commit_cycle(self, apply_fn: ApplyFn) -> None:
        evicted: list[HandleT] = []
        for handle, bucket in list(self._bucket_by_handle.items()):
            apply_fn(handle, list(bucket))
            if bucket:
                self._bucket_by_handle[handle] = []
            else:
                evicted.append(handle)
        for handle in evicted:
            self._evict(handle)
        if evicted:
            _LOG.debug("Evicted %d unused style handle(s)", len(evicted))

    def clear(self, apply_fn: Optional[ApplyFn] = None) -> None:
        """Release every handle, clearing its overlay first when ``apply_fn`` is given."""
        for handle in list(self._bucket_by_handle):
            if apply_fn is not None:
                apply_fn(handle, [])
            self._evict(handle)
        self._handle_by_color.clear()
        self._bucket_by_handle.clear()

    def _evict(self, handle: HandleT) -> None:
        self._bucket_by_handle.pop(handle, None)
        for color in [c for c, h in self._handle_by_color.items() if h is handle]:
            del self._handle_by_color[color]
        if self._release_style is not None:
            self._release_style(handle)
