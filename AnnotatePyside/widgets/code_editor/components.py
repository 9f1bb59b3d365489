from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtCore import QSize
from PySide6.QtWidgets import QWidget

if TYPE_CHECKING:
    from .editor import CodeEditor


# ---------------- Code Editor with line numbers ----------------

class LineNumberArea(QWidget):
    def __init__(self, editor: 'CodeEditor'):
        super().__init__(editor)
        self.codeEditor = editor
    def sizeHint(self):
        return QSize(self.codeEditor.lineNumberAreaWidth(), 0)
    def paintEvent(self, event):
        self.codeEditor.lineNumberAreaPaintEvent(event)
    def mousePressEvent(self, event):
        self.codeEditor.lineNumberAreaMousePressEvent(event)
    def mouseDoubleClickEvent(self, event):
        self.codeEditor.lineNumberAreaMousePressEvent(event)


__all__ = [name for name in globals() if not name.startswith("__")]
