import logging
import os
import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication

from annotate.settings_manager import SettingsManager
from annotate.ui.annotate_window import AnnotateWindow

LOG_LEVEL_ENV = "ANNOTATE_LOG_LEVEL"


def _configure_logging() -> None:
    level_name = str(os.environ.get(LOG_LEVEL_ENV, "WARNING") or "WARNING").strip().upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_startup_settings_manager() -> SettingsManager:
    manager = SettingsManager()
    manager.load_all()
    return manager


def _existing_files(argv: list[str]) -> list[str]:
    files: list[str] = []
    for arg in argv:
        candidate = Path(arg).expanduser()
        if candidate.is_file():
            files.append(str(candidate))
        else:
            logging.getLogger(__name__).warning("Skipping missing file: %s", arg)
    return files


if __name__ == "__main__":
    _configure_logging()
    settings = _load_startup_settings_manager()

    app = QApplication(sys.argv[:1])
    app.setStyle("Fusion")
    app.setApplicationName(AnnotateWindow.APP_NAME)

    window = AnnotateWindow(settings)
    startup_files = _existing_files(sys.argv[1:])
    for path in startup_files:
        window.open_file(path)
    if not startup_files:
        window.new_editor()
    window.show()
    sys.exit(app.exec())
