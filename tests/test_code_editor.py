"""Tests for the editor widget: overlay layers, folding and text insertion."""

import pytest
from PySide6.QtGui import QTextCharFormat, QTextCursor

from AnnotatePyside.widgets.code_editor import CodeEditor, OverlayRange, normalize_fold_ranges


@pytest.fixture
def editor(qapp):
    ed = CodeEditor()
    yield ed
    ed.deleteLater()


class TestOverlayLayers:
    def test_ranges_are_clipped_to_line(self, editor):
        editor.setPlainText("short\nsecond line")
        landed = editor.set_overlay_layer(
            "k",
            QTextCharFormat(),
            [OverlayRange(0, 2, 9999), OverlayRange(1, 7, 11), OverlayRange(1, 20, 30), OverlayRange(9, 0, 1)],
        )
        assert landed == 2
        assert editor.overlay_ranges("k") == [(0, 2, 5), (1, 7, 11)]

    def test_empty_ranges_remove_layer(self, editor):
        editor.setPlainText("abc")
        editor.set_overlay_layer("k", QTextCharFormat(), [OverlayRange(0, 0, 2)])
        assert editor.overlay_keys() == ["k"]
        editor.set_overlay_layer("k", QTextCharFormat(), [])
        assert editor.overlay_keys() == []

    def test_overlays_become_extra_selections(self, editor):
        editor.setPlainText("abc")
        before = len(editor.extraSelections())
        editor.set_overlay_layer("k", QTextCharFormat(), [OverlayRange(0, 0, 2)])
        assert len(editor.extraSelections()) == before + 1
        editor.clear_overlay_layers()
        assert len(editor.extraSelections()) == before

    def test_ranges_follow_edits(self, editor):
        editor.setPlainText("abcdef")
        editor.set_overlay_layer("k", QTextCharFormat(), [OverlayRange(0, 2, 4)])
        cursor = QTextCursor(editor.document())
        cursor.insertText("XY")
        assert editor.overlay_ranges("k") == [(0, 4, 6)]

    def test_hover_html_joins_overlaps(self, editor):
        editor.setPlainText("abcdef")
        editor.set_overlay_layer("a", QTextCharFormat(), [OverlayRange(0, 0, 4, "<p>one</p>")])
        editor.set_overlay_layer("b", QTextCharFormat(), [OverlayRange(0, 2, 6, "<p>two</p>")])
        assert editor.overlay_hover_html_at(1) == "<p>one</p>"
        assert editor.overlay_hover_html_at(3) == "<p>one</p><hr><p>two</p>"
        assert editor.overlay_hover_html_at(6) == ""


class TestEditing:
    def test_document_lines(self, editor):
        editor.setPlainText("a\n\nb")
        assert editor.document_lines() == ["a", "", "b"]

    def test_selection_span(self, editor):
        editor.setPlainText("hello\nworld")
        cursor = editor.textCursor()
        cursor.setPosition(1)
        cursor.setPosition(8, QTextCursor.MoveMode.KeepAnchor)
        editor.setTextCursor(cursor)
        assert editor.selection_span() == (0, 1, 1, 2)

    def test_insert_before_line(self, editor):
        editor.setPlainText("one\ntwo")
        editor.insert_text_before_line(1, "// x []\n", 6)
        assert editor.toPlainText() == "one\n// x []\ntwo"
        assert editor.textCursor().position() == len("one\n") + 6

    def test_insert_past_end_appends(self, editor):
        editor.setPlainText("one")
        editor.insert_text_before_line(1, "// note\n", 3)
        assert editor.toPlainText() == "one\n// note"
        assert editor.textCursor().position() == len("one\n") + 3


class TestFolding:
    def test_normalize(self):
        assert normalize_fold_ranges([(0, 3), (2, 9), (2, 4), (5, 5)], 6) == [(1, 3), (2, 6)]

    def test_provider_regions_and_toggle(self, editor):
        editor.setPlainText("a\nb\nc\nd")
        editor.set_fold_provider(lambda text: [(2, 4)])
        assert editor.fold_ranges() == {1: 3}
        assert editor._toggle_fold_at_block(1)
        assert editor.folded_starts() == {1}
        assert not editor.document().findBlockByNumber(2).isVisible()
        assert editor._toggle_fold_at_block(1)
        assert editor.document().findBlockByNumber(2).isVisible()

    def test_removing_provider_clears_regions(self, editor):
        editor.setPlainText("a\nb\nc")
        editor.set_fold_provider(lambda text: [(1, 3)])
        editor.set_fold_provider(None)
        assert editor.fold_ranges() == {}
        assert editor.fold_provider() is None
