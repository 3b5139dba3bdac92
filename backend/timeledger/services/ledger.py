"""
Reconciliation engine entry point.

A pure function of (events snapshot, configuration) → reports: no I/O and no
state kept between calls. Callers resolve a period, fetch the events for it
and hand them over here.
"""

import logging
from collections.abc import Iterable, Sequence

from timeledger.schemas.ledger import (
    DailyReport,
    DateInterval,
    LedgerConfig,
    PeriodReport,
    Position,
    PunchEvent,
)
from timeledger.services.calculator import build_daily_report
from timeledger.services.pairing import reconcile_day
from timeledger.services.timeline import build_timeline

logger = logging.getLogger(__name__)


def build_daily_reports(events: Iterable[PunchEvent], config: LedgerConfig) -> list[DailyReport]:
    reports: list[DailyReport] = []
    for day, day_events in build_timeline(events).items():
        pairs = reconcile_day(day_events, config.default_position)
        reports.append(build_daily_report(day, pairs, config))
    return reports


def summarize_period(interval: DateInterval, reports: Sequence[DailyReport]) -> PeriodReport:
    """Totals over a period; days without a known surplus do not contribute to it."""
    total_surplus = sum(
        report.surplus_minutes for report in reports if report.surplus_minutes is not None
    )
    return PeriodReport(
        interval=interval,
        days=list(reports),
        total_worked_minutes=sum(report.worked_minutes for report in reports),
        total_surplus_minutes=total_surplus,
        unmatched_days=sum(1 for report in reports if report.has_unmatched),
    )


def report_period(
    interval: DateInterval,
    events: Iterable[PunchEvent],
    config: LedgerConfig,
    position: Position | None = None,
) -> PeriodReport:
    """
    Daily reports and totals for ``interval``.

    With ``position`` only days whose dominant position matches are kept;
    days are always reconciled from all of their events first.
    """
    in_range = [event for event in events if interval.contains(event.day)]
    reports = build_daily_reports(in_range, config)
    if position is not None:
        reports = [report for report in reports if report.position is position]
    logger.debug(
        "Period %s..%s: %d events over %d days", interval.start, interval.end, len(in_range), len(reports)
    )
    return summarize_period(interval, reports)
