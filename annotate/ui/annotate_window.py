from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import QFileDialog, QMainWindow, QMessageBox, QTabWidget

from annotate.settings_manager import SettingsManager
from annotate.settings_store import SettingsStoreError
from annotate.ui.controllers import AnnotationController
from annotate.ui.widgets.code_editor import CodeEditor

_LOG = logging.getLogger(__name__)


class AnnotateWindow(QMainWindow):
    APP_NAME = "Annotate"

    def __init__(self, settings: SettingsManager, parent=None):
        super().__init__(parent)
        self.settings_manager = settings
        self.setWindowTitle(self.APP_NAME)
        self.resize(1100, 760)

        self.tabs = QTabWidget(self)
        self.tabs.setDocumentMode(True)
        self.tabs.setTabsClosable(True)
        self.tabs.setMovable(True)
        self.tabs.currentChanged.connect(self._on_current_changed)
        self.tabs.tabCloseRequested.connect(self._on_tab_close_requested)
        self.setCentralWidget(self.tabs)

        self.annotation_controller = AnnotationController(settings, self)
        self.annotation_controller.statusMessage.connect(lambda m, t: self.statusBar().showMessage(m, t))

        self._build_menus()
        errors = settings.load_errors()
        if errors:
            self.statusBar().showMessage(f"Settings not loaded: {errors[0]}", 6000)
        else:
            self.statusBar().showMessage("Ready", 1500)

    def _build_menus(self):
        file_menu = self.menuBar().addMenu("&File")

        act_new = QAction("New", self)
        act_new.setShortcut(QKeySequence.New)
        act_new.triggered.connect(lambda: self.new_editor())
        file_menu.addAction(act_new)

        act_open = QAction("Open...", self)
        act_open.setShortcut(QKeySequence.Open)
        act_open.triggered.connect(self._open_file_dialog)
        file_menu.addAction(act_open)

        act_save = QAction("Save", self)
        act_save.setShortcut(QKeySequence.Save)
        act_save.triggered.connect(self.save_current)
        file_menu.addAction(act_save)

        file_menu.addSeparator()
        act_quit = QAction("Quit", self)
        act_quit.setShortcut(QKeySequence.Quit)
        act_quit.triggered.connect(self.close)
        file_menu.addAction(act_quit)

        annotate_menu = self.menuBar().addMenu("&Annotate")
        self.act_annotate = QAction("Annotate Selection", self)
        shortcut = str(self.settings_manager.get("annotate.shortcut", default="") or "")
        if shortcut:
            self.act_annotate.setShortcut(QKeySequence(shortcut))
        self.act_annotate.triggered.connect(lambda: self.annotation_controller.annotate_selection())
        annotate_menu.addAction(self.act_annotate)

        act_refresh = QAction("Refresh Annotations", self)
        act_refresh.triggered.connect(lambda: self.annotation_controller.scheduler.schedule(immediate=True))
        annotate_menu.addAction(act_refresh)

    def current_editor(self) -> CodeEditor | None:
        ed = self.tabs.currentWidget()
        return ed if isinstance(ed, CodeEditor) else None

    def new_editor(self, file_path: str | None = None) -> CodeEditor:
        ed = CodeEditor(file_path=file_path, parent=self.tabs)
        self.annotation_controller.attach_editor(ed)
        idx = self.tabs.addTab(ed, ed.display_name())
        ed.document().modificationChanged.connect(self._on_document_modification_changed)
        self.tabs.setCurrentIndex(idx)
        ed.setFocus()
        return ed

    def open_file(self, path: str | Path) -> CodeEditor | None:
        target = str(Path(path).expanduser())
        for i in range(self.tabs.count()):
            ed = self.tabs.widget(i)
            if isinstance(ed, CodeEditor) and ed.file_path() == target:
                self.tabs.setCurrentIndex(i)
                return ed
        if not Path(target).is_file():
            self.statusBar().showMessage(f"File does not exist: {target}", 4000)
            return None
        return self.new_editor(target)

    def _open_file_dialog(self):
        paths, _ = QFileDialog.getOpenFileNames(self, "Open File", str(Path.cwd()))
        for path in paths:
            self.open_file(path)

    def save_current(self) -> bool:
        ed = self.current_editor()
        if ed is None:
            self.statusBar().showMessage("No active editor.", 1500)
            return False
        if not ed.file_path():
            path, _ = QFileDialog.getSaveFileName(self, "Save File", str(Path.cwd()))
            if not path:
                return False
            ed.set_file_path(path)
        saved = ed.save_file()
        if saved:
            self._refresh_tab_title(ed)
        return saved

    def _refresh_tab_title(self, ed: CodeEditor):
        idx = self.tabs.indexOf(ed)
        if idx < 0:
            return
        dirty = "*" if ed.document().isModified() else ""
        self.tabs.setTabText(idx, f"{ed.display_name()}{dirty}")

    def _on_document_modification_changed(self, _modified: bool):
        for i in range(self.tabs.count()):
            ed = self.tabs.widget(i)
            if isinstance(ed, CodeEditor):
                self._refresh_tab_title(ed)

    def _on_current_changed(self, _index: int):
        self.annotation_controller.set_active_editor(self.current_editor())

    def _confirm_close_editor(self, ed: CodeEditor) -> bool:
        if not ed.document().isModified():
            return True
        ans = QMessageBox.question(
            self,
            "Unsaved Changes",
            f"Save changes to '{ed.display_name()}'?",
            QMessageBox.Yes | QMessageBox.No | QMessageBox.Cancel,
            QMessageBox.Yes,
        )
        if ans == QMessageBox.Cancel:
            return False
        if ans == QMessageBox.Yes:
            return self.save_current() if ed is self.current_editor() else ed.save_file()
        return True

    def _on_tab_close_requested(self, index: int):
        ed = self.tabs.widget(index)
        if not isinstance(ed, CodeEditor):
            return
        if not self._confirm_close_editor(ed):
            return
        if ed is self.annotation_controller.active_editor():
            self.annotation_controller.set_active_editor(None)
        self.tabs.removeTab(index)
        ed.deleteLater()

    def closeEvent(self, event):
        for i in range(self.tabs.count()):
            ed = self.tabs.widget(i)
            if isinstance(ed, CodeEditor) and not self._confirm_close_editor(ed):
                event.ignore()
                return
        self.annotation_controller.deactivate()
        try:
            self.settings_manager.save_all()
        except SettingsStoreError as exc:
            _LOG.warning("Could not save settings: %s", exc)
        super().closeEvent(event)
