"""Application-side CodeEditor.

The reusable base lives in ``AnnotatePyside.widgets.code_editor``; this
subclass adds file loading and saving for the annotation window.
"""

from __future__ import annotations

import logging
import os

from PySide6.QtGui import QFontDatabase
from PySide6.QtWidgets import QMessageBox, QSizePolicy

from AnnotatePyside.widgets.code_editor import CodeEditor as BaseCodeEditor

_LOG = logging.getLogger(__name__)


class CodeEditor(BaseCodeEditor):
    FONT_FALLBACKS = (
        "Cascadia Code",
        "Consolas",
        "JetBrains Mono",
        "Fira Code",
        "Courier New",
        "Monospace",
    )

    def __init__(self, file_path: str | None = None, parent=None):
        super().__init__(parent)
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        font = self.font()
        font.setFamily(self._resolve_font_family())
        self.setFont(font)
        if file_path:
            self.load_file(file_path)

    @classmethod
    def _resolve_font_family(cls) -> str:
        families = set(QFontDatabase.families())
        for candidate in cls.FONT_FALLBACKS:
            if candidate in families:
                return candidate
        return "Monospace"

    def display_name(self) -> str:
        path = self.file_path()
        return os.path.basename(path) if path else "Untitled"

    def load_file(self, path: str) -> bool:
        if not os.path.exists(path):
            QMessageBox.warning(self, "Open Error", f"File does not exist:\n{path}")
            return False
        try:
            with open(path, "r", encoding="utf-8") as f:
                self.setPlainText(f.read())
        except (OSError, UnicodeDecodeError) as e:
            _LOG.warning("Could not read %s: %s", path, e)
            QMessageBox.warning(self, "Open Error", f"Could not read file:\n{e}")
            return False
        self.set_file_path(path)
        self.document().setModified(False)
        return True

    def save_file(self) -> bool:
        path = self.file_path()
        if not path:
            return False
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(self.toPlainText())
        except OSError as e:
            _LOG.warning("Could not save %s: %s", path, e)
            QMessageBox.warning(self, "Save Error", f"Could not save file:\n{e}")
            return False
        self.document().setModified(False)
        return True
