"""
Gap classifier, duration and surplus calculator tests.

Tests:
  - TestGaps            : working/non-working boundaries, unmatched neighbours
  - TestDailyReport     : worked minutes, expected exit, surplus, dominant position
  - TestLunch           : recorded, automatic and out-of-bounds lunches
  - TestFormatMinutes   : single leading sign rendering
  - TestPeriodSummary   : totals over several days
"""

from __future__ import annotations

from datetime import date, time

import pytest

from timeledger.schemas.ledger import DateInterval, LedgerConfig, Position
from timeledger.services.calculator import (
    build_daily_report,
    calculate_expected_exit,
    calculate_surplus,
    format_minutes,
)
from timeledger.services.gaps import classify_gaps, working_gap_minutes
from timeledger.services.ledger import build_daily_reports, report_period, summarize_period
from timeledger.services.pairing import reconcile_day

DAY = date(2025, 6, 18)


def _report(events, config: LedgerConfig):
    return build_daily_report(DAY, reconcile_day(events, config.default_position), config)


class TestGaps:
    def test_unflagged_gap_not_work(self, make_event):
        pairs = reconcile_day([
            make_event("in", "09:00"),
            make_event("out", "12:00"),
            make_event("in", "13:00"),
            make_event("out", "17:00"),
        ])
        gaps = classify_gaps(pairs)

        assert len(gaps) == 1
        assert gaps[0].after_pair == 1
        assert gaps[0].span_minutes == 60
        assert not gaps[0].counts_as_work
        assert working_gap_minutes(gaps) == 0

    def test_flagged_gap_counts(self, make_event):
        pairs = reconcile_day([
            make_event("in", "09:00"),
            make_event("out", "12:00", work_gap=True),
            make_event("in", "13:00"),
            make_event("out", "17:00"),
        ])
        assert working_gap_minutes(classify_gaps(pairs)) == 60

    def test_explicit_false(self, make_event):
        pairs = reconcile_day([
            make_event("in", "09:00"),
            make_event("out", "12:00", work_gap=False),
            make_event("in", "13:00"),
            make_event("out", "17:00"),
        ])
        assert working_gap_minutes(classify_gaps(pairs)) == 0

    def test_boundary_touching_unmatched_pair_skipped(self, make_event):
        pairs = reconcile_day([
            make_event("in", "08:00"),
            make_event("in", "09:00"),
            make_event("out", "12:00", work_gap=True),
            make_event("in", "13:00"),
        ])
        assert classify_gaps(pairs) == []


class TestDailyReport:
    def test_two_pairs_no_lunch(self, make_event, config):
        report = _report(
            [
                make_event("in", "09:00"),
                make_event("out", "12:00"),
                make_event("in", "13:00"),
                make_event("out", "17:00"),
            ],
            config,
        )
        assert report.worked_minutes == 420
        assert report.lunch_minutes == 0
        assert report.expected_exit == time(17, 0)
        assert report.surplus_minutes == 0
        assert report.lunch_warnings == []

    def test_working_gap_adds_its_span(self, make_event, config):
        report = _report(
            [
                make_event("in", "09:00"),
                make_event("out", "12:00", work_gap=True),
                make_event("in", "13:00"),
                make_event("out", "17:00"),
            ],
            config,
        )
        assert report.worked_minutes == 480

    def test_in_only_day(self, make_event, config):
        report = _report([make_event("in", "09:00")], config)

        assert report.pairs[0].unmatched
        assert report.has_unmatched
        assert report.worked_minutes == 0
        assert report.expected_exit == time(17, 0)
        assert report.surplus_minutes is None

    def test_out_only_day(self, make_event, config):
        report = _report([make_event("out", "17:00")], config)

        assert report.worked_minutes == 0
        assert report.expected_exit_minutes is None
        assert report.expected_exit is None
        assert report.surplus_minutes is None

    def test_surplus_with_recorded_lunch(self, make_event, config):
        report = _report([make_event("in", "09:00", lunch=30), make_event("out", "17:44")], config)

        assert report.expected_exit == time(17, 30)
        assert report.surplus_minutes == 14
        assert report.worked_minutes == 8 * 60 + 44 - 30

    def test_deficit_is_single_signed_value(self, make_event, config):
        report = _report([make_event("in", "09:00", lunch=30), make_event("out", "16:15")], config)
        assert report.surplus_minutes == -75
        assert format_minutes(report.surplus_minutes) == "-01:15"

    def test_unmatched_pair_contributes_zero(self, make_event, config):
        report = _report(
            [
                make_event("in", "08:00"),
                make_event("in", "09:00"),
                make_event("out", "12:00"),
            ],
            config,
        )
        assert [p.duration_minutes for p in report.pairs] == [0, 180]
        assert report.worked_minutes == 180
        # First IN of the day drives the expected exit, even when orphaned
        assert report.expected_exit == time(16, 0)

    def test_expected_exit_past_midnight(self, make_event, config):
        report = _report([make_event("in", "20:00")], config)
        assert report.expected_exit_minutes == 28 * 60
        assert report.expected_exit == time(4, 0)

    def test_work_duration_from_config(self, make_event):
        config = LedgerConfig(work_duration_minutes=7 * 60 + 36)
        report = _report([make_event("in", "09:00"), make_event("out", "11:00")], config)
        assert report.expected_exit == time(16, 36)

    def test_dominant_position(self, make_event, config):
        same = _report(
            [make_event("in", "09:00", position=Position.REMOTE), make_event("out", "11:00")],
            config,
        )
        mixed = _report(
            [
                make_event("in", "09:00", position=Position.REMOTE),
                make_event("out", "11:00"),
                make_event("in", "15:00", position=Position.OFFICE),
                make_event("out", "17:00"),
            ],
            config,
        )
        assert same.position is Position.REMOTE
        assert mixed.position is Position.MIXED

    def test_helpers_propagate_none(self, config):
        assert calculate_expected_exit(None, 30, config) is None
        assert calculate_surplus(None, 600) is None
        assert calculate_surplus(1000, None) is None


class TestLunch:
    def test_auto_lunch_over_window(self, make_event, config):
        report = _report([make_event("in", "09:00"), make_event("out", "17:44")], config)
        pair = report.pairs[0]

        assert pair.lunch_auto
        assert pair.lunch_minutes == config.min_lunch_minutes
        assert report.surplus_minutes == 14

    def test_no_auto_lunch_when_disabled(self, make_event):
        config = LedgerConfig(auto_lunch=False)
        report = _report([make_event("in", "09:00"), make_event("out", "17:00")], config)

        assert report.pairs[0].lunch_minutes == 0
        assert report.worked_minutes == 480
        assert len(report.lunch_warnings) == 1

    def test_no_auto_lunch_on_holiday(self, make_event, config):
        report = _report(
            [make_event("in", "09:00", position=Position.HOLIDAY), make_event("out", "17:00")],
            config,
        )
        assert report.lunch_minutes == 0
        assert report.lunch_warnings == []

    def test_short_lunch_warns_but_is_kept(self, make_event, config):
        report = _report([make_event("in", "09:00", lunch=10), make_event("out", "17:00")], config)

        assert report.lunch_minutes == 10
        assert len(report.lunch_warnings) == 1
        warning = report.lunch_warnings[0]
        assert (warning.pair_index, warning.lunch_minutes) == (1, 10)
        assert "outside 30-90" in warning.message

    def test_long_lunch_warns(self, make_event, config):
        report = _report([make_event("in", "09:00", lunch=120), make_event("out", "18:00")], config)
        assert report.lunch_warnings[0].lunch_minutes == 120

    def test_lunch_longer_than_span_clamps_duration(self, make_event, config):
        report = _report([make_event("in", "09:00", lunch=60), make_event("out", "09:30")], config)
        assert report.pairs[0].duration_minutes == 0
        assert report.worked_minutes == 0

    def test_lunch_counted_once_per_pair(self, make_event, config):
        report = _report(
            [
                make_event("in", "08:00", lunch=30),
                make_event("out", "12:00", work_gap=True),
                make_event("in", "13:00"),
                make_event("out", "17:00"),
            ],
            config,
        )
        assert report.lunch_minutes == 30
        assert report.worked_minutes == 240 - 30 + 60 + 240

    def test_invalid_config_bounds(self):
        with pytest.raises(ValueError):
            LedgerConfig(min_lunch_minutes=60, max_lunch_minutes=30)


class TestFormatMinutes:
    @pytest.mark.parametrize(
        "minutes, rendered",
        [(0, "00:00"), (14, "00:14"), (-14, "-00:14"), (-75, "-01:15"), (605, "10:05"), (None, "--:--")],
    )
    def test_rendering(self, minutes, rendered):
        assert format_minutes(minutes) == rendered


class TestPeriodSummary:
    def test_totals(self, make_event, config):
        d1, d2, d3 = date(2025, 6, 2), date(2025, 6, 3), date(2025, 6, 4)
        events = [
            make_event("in", "09:00", day=d1, lunch=30),
            make_event("out", "17:44", day=d1),
            make_event("in", "09:00", day=d2, lunch=30),
            make_event("out", "17:20", day=d2),
            make_event("in", "09:00", day=d3),
        ]
        reports = build_daily_reports(events, config)
        summary = summarize_period(DateInterval(start=d1, end=d3), reports)

        assert [r.day for r in summary.days] == [d1, d2, d3]
        assert summary.total_surplus_minutes == 14 - 10
        assert summary.total_worked_minutes == (524 - 30) + (500 - 30)
        assert summary.unmatched_days == 1

    def test_report_period_filters_interval(self, make_event, config):
        events = [
            make_event("in", "09:00", day=date(2025, 5, 31)),
            make_event("out", "17:00", day=date(2025, 5, 31)),
            make_event("in", "09:00", day=date(2025, 6, 2)),
            make_event("out", "17:00", day=date(2025, 6, 2)),
        ]
        june = DateInterval(start=date(2025, 6, 1), end=date(2025, 6, 30))
        summary = report_period(june, events, config)

        assert [r.day for r in summary.days] == [date(2025, 6, 2)]
        assert summary.interval == june
