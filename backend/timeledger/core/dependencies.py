import logging
from datetime import date

from fastapi import Depends, HTTPException, Query, status

from timeledger.core.config import ledger_config, settings
from timeledger.schemas.ledger import DateInterval, LedgerConfig, Position
from timeledger.services.period import MalformedPeriod, resolve_period

logger = logging.getLogger(__name__)


def get_ledger_config() -> LedgerConfig:
    return ledger_config(settings)


def get_today() -> date:
    return date.today()


def period_interval(
    period: str | None = Query(
        default=None,
        description="YYYY, YYYY-MM, YYYY-MM-DD, a range A:B of one of those, or 'all'. "
        "Defaults to the current month.",
    ),
    today: date = Depends(get_today),
) -> DateInterval:
    try:
        return resolve_period(period, today=today)
    except MalformedPeriod as exc:
        logger.warning("Rejected period '%s': %s", period, exc.reason)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": exc.reason,
                "token": exc.token,
                "accepted_formats": list(exc.accepted_formats),
            },
        )


def position_filter(
    pos: str | None = Query(
        default=None,
        description="Position code (O, R, H, C, M), any case.",
    ),
) -> Position | None:
    if pos is None:
        return None
    try:
        return Position.from_code(pos)
    except ValueError as exc:
        logger.warning("Rejected position filter '%s'", pos)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
