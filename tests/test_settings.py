"""Tests for settings loading, normalisation and persistence."""

import json

import pytest

from annotate.settings_manager import SETTINGS_PATH_ENV, SettingsManager
from annotate.settings_models import DEFAULT_PALETTE, PALETTE_SIZE
from annotate.settings_store import JsonSettingsStore, SettingsStoreError, deep_merge_defaults, dot_get, dot_set


@pytest.fixture(autouse=True)
def _no_env_override(monkeypatch):
    monkeypatch.delenv(SETTINGS_PATH_ENV, raising=False)


def _write(path, payload):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


class TestHelpers:
    def test_deep_merge_keeps_user_values(self):
        merged = deep_merge_defaults({"a": {"x": 1}}, {"a": {"x": 0, "y": 2}, "b": 3})
        assert merged == {"a": {"x": 1, "y": 2}, "b": 3}

    def test_dot_access(self):
        data = {}
        dot_set(data, "annotate.debounce_ms", 10)
        assert data == {"annotate": {"debounce_ms": 10}}
        assert dot_get(data, "annotate.debounce_ms") == 10
        assert dot_get(data, "annotate.missing", "fallback") == "fallback"

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            dot_set({}, "", 1)


class TestSettingsManager:
    def test_defaults_without_file(self, tmp_path):
        manager = SettingsManager(tmp_path)
        manager.load_all()
        cfg = manager.annotate_settings()
        assert cfg["debounce_ms"] == 500
        assert cfg["palette"] == list(DEFAULT_PALETTE)
        assert manager.default_comment_prefix() == "// "
        assert manager.load_errors() == []

    def test_user_values_and_normalisation(self, tmp_path):
        _write(
            tmp_path / "settings.json",
            {
                "annotate": {
                    "default_comment_prefix": "# ",
                    "debounce_ms": -3,
                    "color_alpha": 999,
                    "palette": ["#000000"],
                    "border_color": "white-ish",
                }
            },
        )
        manager = SettingsManager(tmp_path)
        manager.load_all()
        cfg = manager.annotate_settings()
        assert manager.default_comment_prefix() == "# "
        assert cfg["debounce_ms"] == 0
        assert cfg["color_alpha"] == 255
        assert len(cfg["palette"]) == PALETTE_SIZE
        assert cfg["palette"][0] == "#000000"
        assert cfg["palette"][1] == DEFAULT_PALETTE[1]
        assert cfg["border_color"] == "#ffffff50"

    def test_broken_file_falls_back_and_is_not_overwritten(self, tmp_path):
        target = tmp_path / "settings.json"
        target.write_text("{not json", encoding="utf-8")
        manager = SettingsManager(tmp_path)
        manager.load_all()
        assert manager.load_errors()
        assert manager.annotate_settings()["debounce_ms"] == 500
        manager.save_all()
        assert target.read_text(encoding="utf-8") == "{not json"

    def test_non_object_root(self, tmp_path):
        _write(tmp_path / "settings.json", [1, 2])
        manager = SettingsManager(tmp_path)
        manager.load_all()
        assert "JSON object" in manager.load_errors()[0]

    def test_save_round_trip(self, tmp_path):
        manager = SettingsManager(tmp_path)
        manager.load_all()
        manager.set("annotate.debounce_ms", 250)
        manager.save_all()
        reloaded = SettingsManager(tmp_path)
        reloaded.load_all()
        assert reloaded.get("annotate.debounce_ms") == 250

    def test_env_override(self, tmp_path, monkeypatch):
        target = tmp_path / "custom" / "annotate.json"
        _write(target, {"annotate": {"shortcut": "Ctrl+K"}})
        monkeypatch.setenv(SETTINGS_PATH_ENV, str(target))
        manager = SettingsManager()
        manager.load_all()
        assert manager.settings_path == target
        assert manager.get("annotate.shortcut") == "Ctrl+K"

    def test_non_persistent_store_ignores_disk(self, tmp_path):
        _write(tmp_path / "settings.json", {"annotate": {"debounce_ms": 42}})
        manager = SettingsManager(tmp_path, persistent=False)
        manager.load_all()
        assert manager.get("annotate.debounce_ms") == 500


class TestJsonSettingsStore:
    def test_save_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        store = JsonSettingsStore(blocker / "settings.json", {"a": 1})
        with pytest.raises(SettingsStoreError):
            store.save()

    def test_set_reports_change(self, tmp_path):
        store = JsonSettingsStore(tmp_path / "s.json", {"a": 1})
        assert store.set("a", 2) is True
        assert store.set("a", 2) is False
        assert store.dirty
