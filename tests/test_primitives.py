"""
tests/test_primitives.py

Pytest unit tests for the safe-arithmetic primitives.

All tests are pure Python: no I/O, plain numeric inputs only.

Coverage
--------
- to_number coercion of unset, malformed and non-finite values
- safe_divide totality (zero, negative, unset denominators)
- safe_divide correctness for positive denominators
- percentage is not clamped to 100
- row filtering of blank or malformed list entries
- display formatting of the undefined sentinel
"""

from __future__ import annotations

import math
from decimal import Decimal

import pytest

from esg_metrics.primitives import (
    coverage_ratio,
    format_percent,
    format_ratio,
    format_value,
    is_set,
    mapping_rows,
    mean,
    median,
    percentage,
    safe_divide,
    sum_fields,
    to_number,
)


# ---------------------------------------------------------------------------
# to_number
# ---------------------------------------------------------------------------


class TestToNumber:
    @pytest.mark.parametrize(
        "raw",
        [None, float("nan"), float("inf"), float("-inf"), "abc", "", "   ", object(), [], {}],
    )
    def test_unusable_values_become_zero(self, raw: object) -> None:
        assert to_number(raw) == 0.0

    def test_numeric_string_is_parsed(self) -> None:
        assert to_number(" 12.5 ") == pytest.approx(12.5)

    def test_ints_floats_and_decimals(self) -> None:
        assert to_number(3) == 3.0
        assert to_number(2.25) == 2.25
        assert to_number(Decimal("1.5")) == 1.5

    def test_booleans_count_as_zero_or_one(self) -> None:
        assert to_number(True) == 1.0
        assert to_number(False) == 0.0

    def test_negative_values_are_kept(self) -> None:
        assert to_number(-4) == -4.0

    def test_is_set_distinguishes_unset_from_zero(self) -> None:
        assert is_set(0)
        assert is_set("7")
        assert not is_set(None)
        assert not is_set(float("nan"))
        assert not is_set("n/a")
        assert not is_set(True)


# ---------------------------------------------------------------------------
# safe_divide
# ---------------------------------------------------------------------------


class TestSafeDivide:
    """Safe division totality and correctness."""

    @pytest.mark.parametrize("numerator", [0.0, 1.0, -3.5, 1e12])
    @pytest.mark.parametrize("denominator", [0, 0.0, -1, -0.001, None, float("nan"), "x"])
    def test_non_positive_or_unset_denominator_is_undefined(
        self, numerator: float, denominator: object
    ) -> None:
        assert safe_divide(numerator, denominator) is None

    @pytest.mark.parametrize(
        "numerator, denominator",
        [(1.0, 3.0), (10.0, 4.0), (-7.0, 2.0), (0.0, 5.0), (123456.789, 0.001)],
    )
    def test_positive_denominator_divides(self, numerator: float, denominator: float) -> None:
        assert safe_divide(numerator, denominator) == pytest.approx(
            numerator / denominator, abs=1e-9
        )

    def test_overflow_is_undefined_not_infinite(self) -> None:
        assert safe_divide(1e308, 1e-308) is None

    def test_unset_numerator_counts_as_zero(self) -> None:
        assert safe_divide(None, 10) == 0.0

    def test_result_is_never_nan(self) -> None:
        result = safe_divide(float("nan"), 2)
        assert result is not None and not math.isnan(result)


# ---------------------------------------------------------------------------
# percentage / coverage
# ---------------------------------------------------------------------------


class TestPercentage:
    def test_percentage_is_not_clamped(self) -> None:
        assert percentage(150, 100) == pytest.approx(150.0)

    def test_percentage_of_zero_whole_is_undefined(self) -> None:
        assert percentage(5, 0) is None

    def test_coverage_ratio_matches_percentage(self) -> None:
        assert coverage_ratio(3, 7) == pytest.approx(percentage(3, 7))

    def test_repeated_calls_are_identical(self) -> None:
        assert percentage(1, 3) == percentage(1, 3)


# ---------------------------------------------------------------------------
# Aggregation helpers
# ---------------------------------------------------------------------------


class TestAggregation:
    def test_sum_fields_ignores_unset(self) -> None:
        assert sum_fields(1, None, "2", float("nan"), 3.5) == pytest.approx(6.5)

    def test_sum_fields_of_nothing_is_zero(self) -> None:
        assert sum_fields() == 0.0

    def test_mean_and_median(self) -> None:
        assert mean([2.0, 4.0, 9.0]) == pytest.approx(5.0)
        assert median([9.0, 2.0, 4.0]) == pytest.approx(4.0)
        assert median([1.0, 2.0, 3.0, 10.0]) == pytest.approx(2.5)

    def test_mean_and_median_of_empty_are_undefined(self) -> None:
        assert mean([]) is None
        assert median([]) is None

    def test_mapping_rows_keeps_only_mappings(self) -> None:
        row = {"headcount": 3}
        assert mapping_rows([None, row, 4, "x", [1]]) == [row]
        assert mapping_rows((row,)) == [row]

    @pytest.mark.parametrize("value", [None, "rows", 5, {"headcount": 3}])
    def test_mapping_rows_of_non_list_is_empty(self, value: object) -> None:
        assert mapping_rows(value) == []


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatting:
    def test_sentinel_renders_as_dash(self) -> None:
        assert format_percent(None) == "—"
        assert format_ratio(None) == "—"
        assert format_value(None) == "—"

    def test_percent_uses_one_decimal(self) -> None:
        assert format_percent(12.345) == "12.3%"

    def test_ratio_suffix(self) -> None:
        assert format_ratio(20.0) == "20.0×"

    def test_custom_placeholder(self) -> None:
        assert format_value(None, placeholder="n/a") == "n/a"
