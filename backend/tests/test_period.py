"""
Period resolver tests.

Tests:
  - TestSingleForms   : year, month (leap and non-leap), day, 'all', default month
  - TestRanges        : same-form ranges, whitespace, inverted ranges
  - TestMalformed     : garbage, mismatched forms, impossible dates, error payload
"""

from __future__ import annotations

from datetime import date

import pytest

from timeledger.schemas.ledger import DateInterval
from timeledger.services.period import (
    ACCEPTED_FORMATS,
    InvertedRange,
    MalformedPeriod,
    resolve_period,
)


class TestSingleForms:
    def test_year(self):
        assert resolve_period("2025") == DateInterval(start=date(2025, 1, 1), end=date(2025, 12, 31))

    def test_month_non_leap(self):
        interval = resolve_period("2025-02")
        assert (interval.start, interval.end) == (date(2025, 2, 1), date(2025, 2, 28))

    def test_month_leap(self):
        interval = resolve_period("2024-02")
        assert (interval.start, interval.end) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_single_day(self):
        interval = resolve_period("2025-06-01")
        assert interval.start == interval.end == date(2025, 6, 1)

    def test_all_is_unbounded(self):
        interval = resolve_period("all")
        assert interval.is_unbounded
        assert interval.contains(date(1970, 1, 1))
        assert interval.contains(date(2999, 12, 31))

    def test_all_case_insensitive(self):
        assert resolve_period("ALL").is_unbounded

    def test_missing_expression_defaults_to_current_month(self):
        interval = resolve_period(None, today=date(2025, 6, 18))
        assert (interval.start, interval.end) == (date(2025, 6, 1), date(2025, 6, 30))

    def test_current_month_constructor(self):
        interval = DateInterval.current_month(date(2024, 2, 10))
        assert interval.end == date(2024, 2, 29)


class TestRanges:
    def test_day_range(self):
        interval = resolve_period("2025-06-01:2025-06-10")
        assert (interval.start, interval.end) == (date(2025, 6, 1), date(2025, 6, 10))

    def test_month_range_spans_to_end_of_last_month(self):
        interval = resolve_period("2025-01:2025-03")
        assert (interval.start, interval.end) == (date(2025, 1, 1), date(2025, 3, 31))

    def test_year_range(self):
        interval = resolve_period("2023:2025")
        assert (interval.start, interval.end) == (date(2023, 1, 1), date(2025, 12, 31))

    def test_same_unit_range_is_that_unit(self):
        assert resolve_period("2025-06:2025-06") == resolve_period("2025-06")

    def test_whitespace_around_sides(self):
        assert resolve_period(" 2025-06-01 : 2025-06-10 ") == resolve_period("2025-06-01:2025-06-10")

    def test_inverted_month_range(self):
        with pytest.raises(InvertedRange) as exc_info:
            resolve_period("2025-06:2025-05")
        assert exc_info.value.token == "2025-06:2025-05"

    def test_inverted_range_is_malformed_period(self):
        with pytest.raises(MalformedPeriod):
            resolve_period("2025-06-10:2025-06-01")


class TestMalformed:
    @pytest.mark.parametrize(
        "expression",
        ["", "   ", "june", "25", "2025-6", "2025/06", "2025-06-01T00:00", "2025-13", "2025-00"],
    )
    def test_rejected(self, expression):
        with pytest.raises(MalformedPeriod):
            resolve_period(expression)

    def test_impossible_day(self):
        with pytest.raises(MalformedPeriod) as exc_info:
            resolve_period("2025-02-30")
        assert exc_info.value.token == "2025-02-30"

    def test_mismatched_range_forms(self):
        with pytest.raises(MalformedPeriod) as exc_info:
            resolve_period("2025-06:2025-06-10")
        assert not isinstance(exc_info.value, InvertedRange)

    @pytest.mark.parametrize("expression", ["2025-06:", ":2025-06", " : "])
    def test_empty_range_side_reports_whole_range(self, expression):
        with pytest.raises(MalformedPeriod) as exc_info:
            resolve_period(expression)
        assert exc_info.value.token == expression.strip()
        assert exc_info.value.token

    def test_bad_side_carries_offending_token(self):
        with pytest.raises(MalformedPeriod) as exc_info:
            resolve_period("2025-06:jul")
        assert exc_info.value.token == "jul"

    def test_two_separators(self):
        with pytest.raises(MalformedPeriod):
            resolve_period("2025:2026:2027")

    def test_error_lists_accepted_formats(self):
        with pytest.raises(MalformedPeriod) as exc_info:
            resolve_period("yesterday")
        assert exc_info.value.accepted_formats == ACCEPTED_FORMATS
        assert "YYYY-MM" in exc_info.value.accepted_formats
