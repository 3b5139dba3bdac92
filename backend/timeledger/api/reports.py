"""
Report API routes.

Every route resolves its period through the same resolver as event listing,
fetches a snapshot of the events and runs the reconciliation engine on it.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from timeledger.core.dependencies import get_ledger_config, period_interval, position_filter
from timeledger.db.session import get_db
from timeledger.schemas.ledger import (
    DailyReport,
    DateInterval,
    LedgerConfig,
    PeriodReport,
    Position,
)
from timeledger.services.event_store import day_report, fetch_events
from timeledger.services.ledger import report_period

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/daily",
    response_model=PeriodReport,
    summary="Daily worked time, expected exit and surplus for a period",
)
async def get_daily_reports(
    interval: DateInterval = Depends(period_interval),
    position: Position | None = Depends(position_filter),
    db: AsyncSession = Depends(get_db),
    config: LedgerConfig = Depends(get_ledger_config),
) -> PeriodReport:
    events = await fetch_events(db, interval)
    report = report_period(interval, events, config, position)
    logger.info(
        "Report %s..%s: %d days, surplus total %d min",
        interval.start, interval.end, len(report.days), report.total_surplus_minutes,
    )
    return report


@router.get(
    "/days/{day}",
    response_model=DailyReport,
    summary="Reconciled pairs and totals for a single date",
)
async def get_day_report(
    day: date,
    db: AsyncSession = Depends(get_db),
    config: LedgerConfig = Depends(get_ledger_config),
) -> DailyReport:
    report = await day_report(db, day, config)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No events recorded on {day}",
        )
    return report
