"""Controller that keeps the active editor's annotation overlays in sync."""

from __future__ import annotations

import logging
from functools import lru_cache

import markdown
from PySide6.QtCore import QObject, Signal
from shiboken6 import isValid as _is_qobject_valid

from AnnotatePyside.widgets.code_editor import CodeEditor, OverlayRange
from annotate.services.annotation_folding import annotation_fold_ranges
from annotate.services.annotation_models import ResolvedDecoration
from annotate.services.annotation_resolver import resolve_blocks
from annotate.services.annotation_snippet import build_annotation_snippet
from annotate.services.document_scanner import scan_document
from annotate.settings_manager import SettingsManager
from annotate.ui.annotation_styles import AnnotationStyle, AnnotationStyleFactory
from annotate.ui.render_state import RenderStateManager
from annotate.ui.update_scheduler import UpdateScheduler

_LOG = logging.getLogger(__name__)

NO_ACTIVE_WINDOW_MESSAGE = "No active window"


@lru_cache(maxsize=512)
def hover_html(text: str | None) -> str:
    """Render hover markdown to HTML. Hover text is trusted and not escaped."""
    source = str(text or "").strip()
    if not source:
        return ""
    return markdown.markdown(source)


class AnnotationController(QObject):
    statusMessage = Signal(str, int)  # message, timeout ms
    cycleCompleted = Signal(int)  # decoration count

    def __init__(self, settings: SettingsManager, parent=None):
        super().__init__(parent)
        self._settings = settings
        cfg = settings.annotate_settings()
        self._styles = AnnotationStyleFactory(cfg)
        self._render_state: RenderStateManager[AnnotationStyle] = RenderStateManager(
            self._styles.create,
            self._styles.release,
        )
        self._scheduler = UpdateScheduler(self.run_cycle, int(cfg.get("debounce_ms", 500)), self)
        self._editor: CodeEditor | None = None

    @property
    def scheduler(self) -> UpdateScheduler:
        return self._scheduler

    @property
    def render_state(self) -> RenderStateManager[AnnotationStyle]:
        return self._render_state

    def active_editor(self) -> CodeEditor | None:
        if self._editor is not None and not _is_qobject_valid(self._editor):
            self._editor = None
        return self._editor

    def attach_editor(self, editor: CodeEditor) -> None:
        """Give a newly opened editor the annotation fold provider."""
        editor.set_fold_provider(annotation_fold_ranges)

    def set_active_editor(self, editor: CodeEditor | None) -> None:
        previous = self.active_editor()
        if editor is previous:
            return
        if previous is not None:
            previous.textChanged.disconnect(self._on_text_changed)
            previous.clear_overlay_layers()

        self._editor = editor
        if editor is None:
            self._scheduler.cancel()
            return
        editor.textChanged.connect(self._on_text_changed)
        self._scheduler.schedule(immediate=True)

    def _on_text_changed(self) -> None:
        self._scheduler.schedule(immediate=False)

    def run_cycle(self) -> int:
        """Scan the active editor and reconcile its overlays. Returns the decoration count."""
        editor = self.active_editor()
        if editor is None:
            return 0
        blocks = scan_document(editor.document_lines())
        self._render_state.begin_cycle()
        decorations = resolve_blocks(blocks, self._render_state)
        self._render_state.commit_cycle(self._apply_to_editor)
        self.cycleCompleted.emit(len(decorations))
        return len(decorations)

    def _apply_to_editor(self, style: AnnotationStyle, decorations: list[ResolvedDecoration]) -> None:
        editor = self.active_editor()
        if editor is None:
            return
        editor.set_overlay_layer(
            style,
            style.char_format,
            [OverlayRange(d.line, d.start, d.end, hover_html(d.hover)) for d in decorations],
        )

    def annotate_selection(self) -> bool:
        """Insert an ``@annotate`` directive for the active editor's selection."""
        editor = self.active_editor()
        if editor is None:
            _LOG.warning("Annotate command ignored: %s", NO_ACTIVE_WINDOW_MESSAGE)
            self.statusMessage.emit(NO_ACTIVE_WINDOW_MESSAGE, 4000)
            return False

        start_line, start_column, end_line, end_column = editor.selection_span()
        snippet = build_annotation_snippet(
            editor.document_lines(),
            comment_prefix=self._settings.default_comment_prefix(),
            start_line=start_line,
            start_column=start_column,
            end_line=end_line,
            end_column=end_column,
        )
        editor.insert_text_before_line(snippet.line, snippet.text, snippet.caret_offset)
        self._scheduler.schedule(immediate=True)
        return True

    def apply_settings(self) -> None:
        """Pick up changed palette, border and debounce settings."""
        cfg = self._settings.annotate_settings()
        self._styles.update_settings(cfg)
        self._scheduler.set_delay(int(cfg.get("debounce_ms", 500)))
        # Existing handles carry the old formats.
        self._render_state.clear(self._apply_to_editor)
        if self.active_editor() is not None:
            self._scheduler.schedule(immediate=True)

    def deactivate(self) -> None:
        self._scheduler.cancel()
        editor = self.active_editor()
        self._render_state.clear(self._apply_to_editor)
        if editor is not None:
            editor.textChanged.disconnect(self._on_text_changed)
            editor.clear_overlay_layers()
        self._editor = None
        _LOG.debug("Annotation overlays deactivated")
