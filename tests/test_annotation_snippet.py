"""Tests for the text inserted by the annotate command."""

from annotate.services.annotation_snippet import build_annotation_snippet, snippet_insert_line


def _build(lines, start, end, prefix="// "):
    return build_annotation_snippet(
        lines,
        comment_prefix=prefix,
        start_line=start[0],
        start_column=start[1],
        end_line=end[0],
        end_column=end[1],
    )


class TestBuildAnnotationSnippet:
    def test_empty_selection_places_caret_in_brackets(self):
        snippet = _build(["value = compute()"], (0, 4), (0, 4))
        assert snippet.text == "// @annotate []\n"
        assert snippet.text[: snippet.caret_offset] == "// @annotate ["
        assert snippet.line == 1

    def test_selection_on_one_line(self):
        snippet = _build(["value = compute()"], (0, 8), (0, 15), prefix="# ")
        assert snippet.text == "# @annotate [8-15] \n"
        assert snippet.caret_offset == len("# @annotate [8-15] ")

    def test_multi_line_selection_uses_first_line(self):
        snippet = _build(["abcdef", "ghi"], (0, 2), (1, 1))
        assert snippet.text == "// @annotate [2-6] \n"
        assert snippet.line == 1

    def test_skips_existing_annotations(self):
        lines = ["code", "// @annotate [0-1]", "// @annotate [1-2]", "next"]
        assert snippet_insert_line(lines, 0) == 3

    def test_config_line_stops_the_skip(self):
        lines = ["code", "// @annotate [0-1]", "// @annotate-cfg [clamp = [0, 2]]", "next"]
        assert snippet_insert_line(lines, 0) == 2

    def test_plain_comment_stops_the_skip(self):
        lines = ["code", "// @annotate [0-1]", "// plain", "next"]
        assert snippet_insert_line(lines, 0) == 2

    def test_last_line(self):
        assert snippet_insert_line(["only"], 0) == 1
