import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def settings_manager(tmp_path, monkeypatch):
    from annotate.settings_manager import SETTINGS_PATH_ENV, SettingsManager

    monkeypatch.delenv(SETTINGS_PATH_ENV, raising=False)
    manager = SettingsManager(tmp_path, persistent=False)
    manager.load_all()
    return manager
