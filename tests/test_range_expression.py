"""Tests for the restricted range/clamp expression language."""

import sys

import pytest

from annotate.services.range_expression import (
    RangeEvaluationError,
    RangeExpressionError,
    RangeSyntaxError,
    evaluate_clamp,
    evaluate_range_fn,
    tokenize,
)


class TestTokenize:
    def test_operators_and_names(self):
        kinds = [(t.kind, t.text) for t in tokenize("start += 2 * end")]
        assert kinds == [
            ("name", "start"),
            ("op", "+="),
            ("num", "2"),
            ("op", "*"),
            ("name", "end"),
            ("eof", ""),
        ]

    def test_unexpected_character_reports_column(self):
        with pytest.raises(RangeSyntaxError) as excinfo:
            tokenize("start @ 2")
        assert excinfo.value.column == 6
        assert "column 7" in str(excinfo.value)


class TestRangeFn:
    def test_block_assignments(self):
        fn = evaluate_range_fn("{ start = start + 1; end = end + 1 }")
        assert fn(0, 3) == (1, 4)

    def test_scaling_formula(self):
        fn = evaluate_range_fn("{ start = 8 + start * 3 - 1; end = 8 + end * 3 - 2 }")
        assert fn(0, 2) == (7, 12)

    def test_empty_source_is_identity(self):
        assert evaluate_range_fn("")(4, 9) == (4, 9)

    def test_explicit_return_pair(self):
        fn = evaluate_range_fn("return [end, end + start]")
        assert fn(2, 5) == (5, 7)

    def test_locals_and_conditionals(self):
        fn = evaluate_range_fn(
            "let width = end - start; if (width > 4) { end = start + 4 } else end = end + 1"
        )
        assert fn(0, 10) == (0, 4)
        assert fn(0, 2) == (0, 3)

    def test_compound_assignment_and_math(self):
        fn = evaluate_range_fn("start *= 2; end = Math.max(end, start) + abs(-1)")
        assert fn(3, 4) == (6, 7)

    def test_division_is_floored(self):
        fn = evaluate_range_fn("start = start / 2; end = end / 2")
        assert fn(3, 9) == (1, 4)

    def test_remainder_follows_dividend(self):
        fn = evaluate_range_fn("start = -7 % 3; end = 7 % -3")
        assert fn(0, 0) == (-1, 1)

    def test_ternary_and_logic(self):
        fn = evaluate_range_fn("end = start == 0 && end > 2 ? 99 : end")
        assert fn(0, 5) == (0, 99)
        assert fn(1, 5) == (1, 5)

    def test_missing_separator(self):
        with pytest.raises(RangeSyntaxError):
            evaluate_range_fn("start = 1 end = 2")

    def test_unknown_name(self):
        fn = evaluate_range_fn("start = width")
        with pytest.raises(RangeEvaluationError, match="width is not defined"):
            fn(0, 1)

    def test_division_by_zero(self):
        fn = evaluate_range_fn("end = end / 0")
        with pytest.raises(RangeEvaluationError, match="Division by zero"):
            fn(0, 1)

    def test_list_result_for_offset_is_rejected(self):
        fn = evaluate_range_fn("start = [1, 2]")
        with pytest.raises(RangeEvaluationError):
            fn(0, 1)

    def test_bad_return_shape(self):
        fn = evaluate_range_fn("return [1, 2, 3]")
        with pytest.raises(RangeEvaluationError):
            fn(0, 1)

    def test_no_access_to_python(self):
        with pytest.raises(RangeExpressionError):
            evaluate_range_fn("start = __import__('os')")(0, 1)
        with pytest.raises(RangeExpressionError):
            evaluate_range_fn("start = start.__class__")

    def test_unknown_function(self):
        fn = evaluate_range_fn("start = print(1)")
        with pytest.raises(RangeEvaluationError, match="not a function"):
            fn(0, 1)

    def test_errors_are_value_errors(self):
        assert issubclass(RangeExpressionError, ValueError)


class TestClamp:
    def test_pair(self):
        assert evaluate_clamp("[2, 8]") == (2, 8)

    def test_arithmetic_elements(self):
        assert evaluate_clamp("[1 + 1, 2 * 4.5]") == (2, 9)

    def test_wrong_length(self):
        with pytest.raises(RangeEvaluationError):
            evaluate_clamp("[1]")

    def test_not_a_list(self):
        with pytest.raises(RangeEvaluationError):
            evaluate_clamp("5")

    def test_no_inputs_bound(self):
        with pytest.raises(RangeEvaluationError, match="start is not defined"):
            evaluate_clamp("[start, 2]")

    def test_empty_source(self):
        with pytest.raises(RangeSyntaxError):
            evaluate_clamp("")

    def test_trailing_tokens(self):
        with pytest.raises(RangeSyntaxError):
            evaluate_clamp("[1, 2] 3")


class TestRunawayInput:
    def test_nested_if_chain_is_limited(self):
        with pytest.raises(RangeSyntaxError, match="nested too deeply"):
            evaluate_range_fn("if (1) " * 600 + "start = 1")

    def test_nested_blocks_are_limited(self):
        with pytest.raises(RangeSyntaxError, match="nested too deeply"):
            evaluate_range_fn("{" * 200 + "}" * 200)

    def test_moderate_nesting_still_works(self):
        fn = evaluate_range_fn("if (1) " * 10 + "start = 4")
        assert fn(0, 9) == (4, 9)

    def test_long_operator_chain_fails_cleanly(self):
        fn = evaluate_range_fn("start = " + "1 + " * 5000 + "1")
        with pytest.raises(RangeEvaluationError):
            fn(0, 1)

    @pytest.mark.skipif(
        not hasattr(sys, "get_int_max_str_digits"),
        reason="interpreter has no integer string conversion limit",
    )
    def test_oversized_integer_literal(self):
        with pytest.raises(RangeSyntaxError, match="Invalid number"):
            evaluate_clamp("[" + "9" * 5000 + ", 2]")

    def test_oversized_float_literal_is_not_finite(self):
        with pytest.raises(RangeEvaluationError, match="finite"):
            evaluate_clamp("[" + "9" * 400 + ".5, 2]")

    @pytest.mark.parametrize("op", ["*", "+", "-", "/", "%"])
    def test_int_float_overflow(self, op):
        fn = evaluate_range_fn(f"start = {'9' * 400} {op} 0.5")
        with pytest.raises(RangeEvaluationError):
            fn(0, 1)

    def test_overflowing_compound_assignment(self):
        fn = evaluate_range_fn(f"start = {'9' * 400}; start *= 0.5")
        with pytest.raises(RangeEvaluationError):
            fn(0, 1)
