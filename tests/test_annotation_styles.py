from PySide6.QtGui import QTextCharFormat

from annotate.settings_models import DEFAULT_PALETTE, default_annotate_settings
from annotate.ui.annotation_styles import AnnotationStyleFactory, css_color


class TestCssColor:
    def test_css_alpha_order(self):
        color = css_color("#ffffff50", alpha=10)
        assert (color.red(), color.green(), color.blue(), color.alpha()) == (255, 255, 255, 0x50)

    def test_short_hex(self):
        color = css_color("#f00", alpha=96)
        assert (color.red(), color.green(), color.blue(), color.alpha()) == (255, 0, 0, 96)

    def test_named(self):
        color = css_color("green", alpha=40)
        assert color.isValid()
        assert color.alpha() == 40

    def test_unknown(self):
        assert not css_color("notacolor", alpha=96).isValid()


class TestAnnotationStyleFactory:
    def test_default_slot_uses_palette(self, qapp):
        factory = AnnotationStyleFactory(default_annotate_settings())
        expected = css_color(DEFAULT_PALETTE[2], alpha=96)
        assert factory.background_for("default2") == expected
        assert factory.background_for("default10") == expected

    def test_create_sets_background_and_underline(self, qapp):
        factory = AnnotationStyleFactory(default_annotate_settings())
        style = factory.create("red")
        fmt = style.char_format
        assert fmt.background().color().red() == 255
        assert fmt.underlineStyle() == QTextCharFormat.UnderlineStyle.SingleUnderline

    def test_unknown_color_still_gets_a_handle(self, qapp):
        factory = AnnotationStyleFactory(default_annotate_settings())
        style = factory.create("mystery")
        assert style.char_format.background().color().alpha() == 0

    def test_handles_are_distinct(self, qapp):
        factory = AnnotationStyleFactory()
        first = factory.create("red")
        second = factory.create("red")
        assert first is not second
        assert first != second
        assert hash(first) != hash(second)
