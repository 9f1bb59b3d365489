from __future__ import annotations

import logging
from typing import Hashable, Iterable, NamedTuple

from PySide6.QtCore import QEvent, QPoint, QRect, Qt, QTimer
from PySide6.QtGui import (
    QColor,
    QFont,
    QPainter,
    QPalette,
    QPolygon,
    QTextCharFormat,
    QTextCursor,
    QTextFormat,
)
from PySide6.QtWidgets import QApplication, QPlainTextEdit, QTextEdit, QToolTip, QWidget

from .code_folding import FoldProvider, update_folding as update_editor_folding
from .components import LineNumberArea
from .helpers import (
    _EDITOR_BACKGROUND,
    _EDITOR_FOREGROUND,
    _FOLD_REFRESH_MS,
    _OVERLAY_HOVER_DELAY_MS,
    _TOOLTIP_QSS,
    _TOOLTIP_STYLE_MARKER,
    _clamp_columns,
    _join_hover_html,
)

_LOG = logging.getLogger(__name__)


class OverlayRange(NamedTuple):
    line: int  # 0-based block number
    start: int  # column, inclusive
    end: int  # column, exclusive
    hover_html: str = ""


class CodeEditor(QPlainTextEdit):
    """Plain text editor with a line-number/fold gutter and overlay layers.

    Overlay layers are keyed by any hashable handle. Each layer carries one
    character format and a list of ranges; ranges are clipped to their line
    and follow later edits until the layer is replaced. Ranges with hover
    HTML show it as a tooltip when the mouse rests on them.
    """

    _tooltip_style_installed = False

    def __init__(self, parent=None):
        super().__init__(parent)
        self._file_path: str | None = None
        self._fold_provider: FoldProvider | None = None
        self._fold_ranges: dict[int, int] = {}
        self._folded_starts: set[int] = set()
        self._fold_gutter_width = 14
        self._overlay_layers: dict[Hashable, list[tuple[QTextEdit.ExtraSelection, str]]] = {}
        self._editor_background_color = QColor(_EDITOR_BACKGROUND)
        self._hover_pending_pos = QPoint()

        self._fold_refresh_timer = QTimer(self)
        self._fold_refresh_timer.setSingleShot(True)
        self._fold_refresh_timer.setInterval(_FOLD_REFRESH_MS)
        self._fold_refresh_timer.timeout.connect(self._refresh_fold_ranges)
        self.textChanged.connect(self._schedule_fold_refresh)

        self._hover_timer = QTimer(self)
        self._hover_timer.setSingleShot(True)
        self._hover_timer.setInterval(_OVERLAY_HOVER_DELAY_MS)
        self._hover_timer.timeout.connect(self._on_hover_timer)
        self.viewport().setMouseTracking(True)
        self.viewport().installEventFilter(self)

        self.lineNumberArea = LineNumberArea(self)
        self.blockCountChanged.connect(self.updateLineNumberAreaWidth)
        self.updateRequest.connect(self.updateLineNumberArea)
        self.cursorPositionChanged.connect(self.highlightCurrentLine)

        self.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        self.setFont(QFont("Courier New", 11))
        self.set_editor_background()
        self.updateLineNumberAreaWidth(0)
        self.highlightCurrentLine()
        self._ensure_tooltip_style()

    # --------- document access ---------
    def set_file_path(self, file_path: str | None):
        self._file_path = str(file_path) if file_path else None

    def file_path(self) -> str | None:
        return self._file_path

    def document_lines(self) -> list[str]:
        return self.toPlainText().split("\n")

    def selection_span(self) -> tuple[int, int, int, int]:
        """``(start_line, start_column, end_line, end_column)`` of the selection, 0-based."""
        cursor = self.textCursor()
        doc = self.document()
        start_block = doc.findBlock(cursor.selectionStart())
        end_block = doc.findBlock(cursor.selectionEnd())
        return (
            int(start_block.blockNumber()),
            int(cursor.selectionStart() - start_block.position()),
            int(end_block.blockNumber()),
            int(cursor.selectionEnd() - end_block.position()),
        )

    def insert_text_before_line(self, line: int, text: str, caret_offset: int = 0) -> None:
        """Insert ``text`` at the start of ``line`` and put the caret inside it.

        A line past the end appends ``text`` on a new last line.
        """
        doc = self.document()
        cursor = QTextCursor(doc)
        cursor.beginEditBlock()
        if 0 <= int(line) < doc.blockCount():
            insert_pos = int(doc.findBlockByNumber(int(line)).position())
            cursor.setPosition(insert_pos)
            cursor.insertText(text)
        else:
            cursor.movePosition(QTextCursor.MoveOperation.End)
            cursor.insertText("\n")
            insert_pos = int(cursor.position())
            cursor.insertText(str(text).rstrip("\n"))
        cursor.endEditBlock()

        caret = QTextCursor(doc)
        caret.setPosition(min(insert_pos + max(0, int(caret_offset)), max(0, doc.characterCount() - 1)))
        self.setTextCursor(caret)

    # --------- overlay layers ---------
    def set_overlay_layer(
        self,
        key: Hashable,
        char_format: QTextCharFormat,
        ranges: Iterable[OverlayRange],
    ) -> int:
        """Replace the ranges drawn for ``key``; an empty iterable removes the layer.

        Returns the number of ranges that landed inside the document.
        """
        doc = self.document()
        selections: list[tuple[QTextEdit.ExtraSelection, str]] = []
        for item in ranges:
            block = doc.findBlockByNumber(int(item.line))
            if not block.isValid():
                continue
            cols = _clamp_columns(item.start, item.end, len(block.text()))
            if cols is None:
                continue
            cursor = QTextCursor(block)
            cursor.setPosition(block.position() + cols[0])
            cursor.setPosition(block.position() + cols[1], QTextCursor.MoveMode.KeepAnchor)
            selection = QTextEdit.ExtraSelection()
            selection.format = QTextCharFormat(char_format)
            selection.cursor = cursor
            selections.append((selection, str(item.hover_html or "")))

        if selections:
            self._overlay_layers[key] = selections
        else:
            self._overlay_layers.pop(key, None)
        self._rebuild_extra_selections()
        return len(selections)

    def clear_overlay_layers(self) -> None:
        if not self._overlay_layers:
            return
        self._overlay_layers.clear()
        self._rebuild_extra_selections()

    def overlay_keys(self) -> list[Hashable]:
        return list(self._overlay_layers)

    def overlay_ranges(self, key: Hashable) -> list[tuple[int, int, int]]:
        """Current ``(line, start, end)`` of every range in a layer."""
        doc = self.document()
        out: list[tuple[int, int, int]] = []
        for selection, _hover in self._overlay_layers.get(key, []):
            cursor = selection.cursor
            block = doc.findBlock(cursor.selectionStart())
            out.append(
                (
                    int(block.blockNumber()),
                    int(cursor.selectionStart() - block.position()),
                    int(cursor.selectionEnd() - block.position()),
                )
            )
        return out

    def overlay_hover_html_at(self, position: int) -> str:
        """Hover HTML of every overlay range covering a document position."""
        pos = int(position)
        parts: list[str] = []
        for layer in self._overlay_layers.values():
            for selection, hover in layer:
                if not hover:
                    continue
                cursor = selection.cursor
                if cursor.selectionStart() <= pos < cursor.selectionEnd():
                    parts.append(hover)
        return _join_hover_html(parts)

    def _rebuild_extra_selections(self):
        extraSelections: list[QTextEdit.ExtraSelection] = []
        for layer in self._overlay_layers.values():
            extraSelections.extend(selection for selection, _hover in layer)
        if not self.isReadOnly():
            selection = QTextEdit.ExtraSelection()
            lineColor = QColor(self._editor_background_color)
            if lineColor.lightness() < 128:
                lineColor = lineColor.lighter(130)
            else:
                lineColor = lineColor.darker(112)
            lineColor.setAlpha(140)
            selection.format.setBackground(lineColor)
            selection.format.setProperty(QTextFormat.FullWidthSelection, True)
            selection.cursor = self.textCursor()
            selection.cursor.clearSelection()
            # Current line goes first so overlays paint on top of it.
            extraSelections.insert(0, selection)
        self.setExtraSelections(extraSelections)

    def highlightCurrentLine(self):
        self._rebuild_extra_selections()

    # --------- hover tooltips ---------
    def _ensure_tooltip_style(self):
        if CodeEditor._tooltip_style_installed:
            return
        app = QApplication.instance()
        if app is None:
            return
        current = str(app.styleSheet() or "")
        if _TOOLTIP_STYLE_MARKER in current:
            CodeEditor._tooltip_style_installed = True
            return
        app.setStyleSheet((current + "\n" + _TOOLTIP_QSS).strip())
        CodeEditor._tooltip_style_installed = True

    def eventFilter(self, watched, event):
        if watched is self.viewport():
            et = event.type()
            if et == QEvent.MouseMove:
                pos = event.position().toPoint() if hasattr(event, "position") else event.pos()
                self._hover_pending_pos = QPoint(pos)
                if self._overlay_layers:
                    self._hover_timer.start()
                else:
                    self._clear_hover_tooltip()
            elif et in (QEvent.Leave, QEvent.Hide):
                self._clear_hover_tooltip()
        return super().eventFilter(watched, event)

    def _clear_hover_tooltip(self):
        self._hover_timer.stop()
        QToolTip.hideText()

    def _on_hover_timer(self):
        pos = QPoint(self._hover_pending_pos)
        html = self.overlay_hover_html_at(self.cursorForPosition(pos).position())
        if html:
            QToolTip.showText(self.viewport().mapToGlobal(pos + QPoint(12, 16)), html, self)
        else:
            QToolTip.hideText()

    # --------- background ---------
    def set_editor_background(
        self,
        *,
        background_color: str | QColor = _EDITOR_BACKGROUND,
        foreground_color: str | QColor = _EDITOR_FOREGROUND,
    ) -> None:
        base = QColor(background_color)
        if not base.isValid():
            base = QColor(_EDITOR_BACKGROUND)
        text = QColor(foreground_color)
        if not text.isValid():
            text = QColor(_EDITOR_FOREGROUND)
        self._editor_background_color = base

        palette = self.palette()
        palette.setColor(QPalette.Base, base)
        palette.setColor(QPalette.Text, text)
        self.setPalette(palette)
        self._rebuild_extra_selections()
        self.lineNumberArea.update()

    # --------- folding ---------
    def set_fold_provider(self, provider: FoldProvider | None):
        self._fold_provider = provider
        if provider is None:
            self._clear_folding()
            self.updateLineNumberAreaWidth(0)
            self.lineNumberArea.update()
            return
        self.updateLineNumberAreaWidth(0)
        self._schedule_fold_refresh(immediate=True)

    def fold_provider(self) -> FoldProvider | None:
        return self._fold_provider

    def fold_ranges(self) -> dict[int, int]:
        """0-based ``{start_block: end_block}`` of the current fold regions."""
        return dict(self._fold_ranges)

    def folded_starts(self) -> set[int]:
        return set(self._folded_starts)

    def _clear_folding(self):
        self._fold_refresh_timer.stop()
        self._fold_ranges = {}
        self._folded_starts = set()
        self._set_all_blocks_visible()
        self._refresh_fold_layout()

    def _schedule_fold_refresh(self, immediate: bool = False):
        if self._fold_provider is None:
            return
        if immediate:
            self._fold_refresh_timer.stop()
            self._refresh_fold_ranges()
            return
        self._fold_refresh_timer.start()

    def _refresh_fold_ranges(self):
        update_editor_folding(self)

    def _set_all_blocks_visible(self):
        block = self.document().firstBlock()
        while block.isValid():
            block.setVisible(True)
            block.setLineCount(1)
            block = block.next()

    def _apply_fold_visibility(self):
        self._set_all_blocks_visible()
        for start_block in sorted(self._folded_starts):
            end_block = self._fold_ranges.get(start_block)
            if end_block is None or end_block <= start_block:
                continue
            block = self.document().findBlockByNumber(start_block).next()
            while block.isValid() and block.blockNumber() <= end_block:
                block.setVisible(False)
                block.setLineCount(0)
                block = block.next()
        self._refresh_fold_layout()

    def _refresh_fold_layout(self):
        doc = self.document()
        doc.markContentsDirty(0, max(0, doc.characterCount()))
        self.viewport().update()
        self.lineNumberArea.update()
        self._apply_viewport_margins()

    def _toggle_fold_at_block(self, block_number: int) -> bool:
        block_no = int(block_number)
        if block_no not in self._fold_ranges:
            return False
        if block_no in self._folded_starts:
            self._folded_starts.discard(block_no)
        else:
            self._folded_starts.add(block_no)
        self._apply_fold_visibility()
        return True

    def _fold_marker_rect(self, top: int, line_height: int) -> QRect:
        marker_size = max(8, min(11, int(line_height) - 3))
        x = 2
        y = int(top + max(0, (line_height - marker_size) // 2))
        return QRect(x, y, marker_size, marker_size)

    def _block_number_at_y(self, y_pos: int) -> int:
        block = self.firstVisibleBlock()
        top = self.blockBoundingGeometry(block).translated(self.contentOffset()).top()
        bottom = top + self.blockBoundingRect(block).height()

        while block.isValid() and top <= y_pos:
            if block.isVisible() and bottom >= y_pos:
                return int(block.blockNumber())
            block = block.next()
            top = bottom
            bottom = top + self.blockBoundingRect(block).height()
        return -1

    # --------- gutter ---------
    def _apply_viewport_margins(self):
        self.setViewportMargins(self.lineNumberAreaWidth(), 0, 0, 0)
        if hasattr(self, "lineNumberArea") and isinstance(self.lineNumberArea, QWidget):
            cr = self.contentsRect()
            self.lineNumberArea.setGeometry(
                QRect(cr.left(), cr.top(), self.lineNumberAreaWidth(), cr.height())
            )

    def lineNumberAreaWidth(self):
        digits = 1
        max_num = max(1, self.blockCount())
        while max_num >= 10:
            max_num //= 10
            digits += 1
        space = 3 + self.fontMetrics().horizontalAdvance("9") * digits
        if self._fold_provider is not None:
            space += int(self._fold_gutter_width)
        return space

    def updateLineNumberAreaWidth(self, _):
        self._apply_viewport_margins()

    def updateLineNumberArea(self, rect, dy):
        if dy:
            self.lineNumberArea.scroll(0, dy)
        else:
            self.lineNumberArea.update(
                0, rect.y(), self.lineNumberArea.width(), rect.height()
            )
        if rect.contains(self.viewport().rect()):
            self.updateLineNumberAreaWidth(0)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._apply_viewport_margins()

    def showEvent(self, event):
        super().showEvent(event)
        QTimer.singleShot(0, self._apply_viewport_margins)

    def lineNumberAreaPaintEvent(self, event):
        painter = QPainter(self.lineNumberArea)
        gutter = QColor(self._editor_background_color)
        if gutter.lightness() < 128:
            gutter = gutter.darker(125)
        else:
            gutter = gutter.darker(108)
        painter.fillRect(event.rect(), gutter)

        block = self.firstVisibleBlock()
        blockNumber = block.blockNumber()
        top = self.blockBoundingGeometry(block).translated(self.contentOffset()).top()
        bottom = top + self.blockBoundingRect(block).height()

        while block.isValid() and top <= event.rect().bottom():
            if block.isVisible() and bottom >= event.rect().top():
                number = str(blockNumber + 1)
                number_color = QColor(gutter)
                if number_color.lightness() < 128:
                    number_color = number_color.lighter(155)
                else:
                    number_color = number_color.darker(155)
                painter.setPen(number_color)
                number_left = int(self._fold_gutter_width if self._fold_provider is not None else 0)
                painter.drawText(
                    number_left,
                    int(top),
                    max(0, self.lineNumberArea.width() - number_left - 2),
                    self.fontMetrics().height(),
                    Qt.AlignRight,
                    number,
                )
                if self._fold_provider is not None and blockNumber in self._fold_ranges:
                    marker = self._fold_marker_rect(int(top), self.fontMetrics().height())
                    marker_color = QColor(number_color)
                    marker_color.setAlpha(220)
                    painter.setPen(Qt.NoPen)
                    painter.setBrush(marker_color)
                    if blockNumber in self._folded_starts:
                        pts = [
                            QPoint(marker.left(), marker.top()),
                            QPoint(marker.left(), marker.bottom()),
                            QPoint(marker.right(), marker.center().y()),
                        ]
                    else:
                        pts = [
                            QPoint(marker.left(), marker.top()),
                            QPoint(marker.right(), marker.top()),
                            QPoint(marker.center().x(), marker.bottom()),
                        ]
                    painter.drawPolygon(QPolygon(pts))
            block = block.next()
            top = bottom
            bottom = top + self.blockBoundingRect(block).height()
            blockNumber += 1
        painter.end()

    def lineNumberAreaMousePressEvent(self, event):
        if event.button() != Qt.LeftButton or self._fold_provider is None:
            event.ignore()
            return

        point = event.position().toPoint() if hasattr(event, "position") else event.pos()
        if int(point.x()) > int(self._fold_gutter_width):
            event.ignore()
            return

        block_number = self._block_number_at_y(int(point.y()))
        if block_number >= 0 and self._toggle_fold_at_block(block_number):
            event.accept()
            return
        event.ignore()


__all__ = ["CodeEditor", "OverlayRange"]
