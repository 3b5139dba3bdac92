"""
Duration and surplus calculator.

Surplus is always ``last OUT − expected exit``. It is never derived from
``worked − target``: worked minutes already fold in lunch and working gaps.
"""

import logging
from collections.abc import Sequence
from datetime import date

from timeledger.schemas.ledger import (
    DailyReport,
    LedgerConfig,
    LunchOutOfBounds,
    Pair,
    Position,
)
from timeledger.services.gaps import classify_gaps, working_gap_minutes

logger = logging.getLogger(__name__)


def format_minutes(minutes: int | None) -> str:
    """Render a signed minute count as ``[-]HH:MM`` with a single leading sign."""
    if minutes is None:
        return "--:--"
    sign = "-" if minutes < 0 else ""
    hours, rest = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}:{rest:02d}"


def covers_lunch_window(pair: Pair, config: LedgerConfig) -> bool:
    if pair.unmatched:
        return False
    return (
        pair.in_event.minute_of_day <= config.lunch_window_start
        and pair.out_event.minute_of_day >= config.lunch_window_end
    )


def effective_lunch(pair: Pair, config: LedgerConfig) -> tuple[int, bool]:
    """Lunch minutes to charge to ``pair`` and whether they were deduced automatically."""
    if pair.lunch_minutes is not None:
        return pair.lunch_minutes, False
    if config.auto_lunch and pair.position.requires_lunch and covers_lunch_window(pair, config):
        return config.min_lunch_minutes, True
    return 0, False


def pair_duration(pair: Pair, lunch_minutes: int) -> int:
    span = pair.span_minutes
    if span is None:
        return 0
    return max(0, span - lunch_minutes)


def check_lunch(pair: Pair, lunch_minutes: int, config: LedgerConfig) -> LunchOutOfBounds | None:
    if pair.unmatched or not pair.position.requires_lunch:
        return None
    if lunch_minutes == 0 and not covers_lunch_window(pair, config):
        return None
    if config.min_lunch_minutes <= lunch_minutes <= config.max_lunch_minutes:
        return None
    return LunchOutOfBounds(
        day=pair.day,
        pair_index=pair.index,
        lunch_minutes=lunch_minutes,
        min_minutes=config.min_lunch_minutes,
        max_minutes=config.max_lunch_minutes,
    )


def calculate_expected_exit(
    first_in_minutes: int | None, total_lunch_minutes: int, config: LedgerConfig
) -> int | None:
    if first_in_minutes is None:
        return None
    return first_in_minutes + config.work_duration_minutes + total_lunch_minutes


def calculate_surplus(last_out_minutes: int | None, expected_exit_minutes: int | None) -> int | None:
    if last_out_minutes is None or expected_exit_minutes is None:
        return None
    return last_out_minutes - expected_exit_minutes


def dominant_position(pairs: Sequence[Pair], default: Position) -> Position:
    positions = {pair.position for pair in pairs}
    if not positions:
        return default
    if len(positions) == 1:
        return positions.pop()
    return Position.MIXED


def build_daily_report(day: date, pairs: Sequence[Pair], config: LedgerConfig) -> DailyReport:
    """Aggregate one day's reconciled pairs into a ``DailyReport``."""
    resolved: list[Pair] = []
    warnings: list[LunchOutOfBounds] = []
    for pair in pairs:
        lunch, auto = effective_lunch(pair, config)
        warning = check_lunch(pair, lunch, config)
        if warning is not None:
            logger.warning(warning.message)
            warnings.append(warning)
        resolved.append(
            pair.model_copy(
                update={
                    "lunch_minutes": lunch,
                    "lunch_auto": auto,
                    "duration_minutes": pair_duration(pair, lunch),
                }
            )
        )

    gaps = classify_gaps(resolved)
    total_lunch = sum(pair.lunch_minutes for pair in resolved)
    worked = sum(pair.duration_minutes for pair in resolved) + working_gap_minutes(gaps)

    first_in = next(
        (pair.in_event.minute_of_day for pair in resolved if pair.in_event is not None), None
    )
    last_out = next(
        (pair.out_event.minute_of_day for pair in reversed(resolved) if pair.out_event is not None),
        None,
    )
    expected_exit = calculate_expected_exit(first_in, total_lunch, config)

    return DailyReport(
        day=day,
        pairs=resolved,
        gaps=gaps,
        worked_minutes=worked,
        lunch_minutes=total_lunch,
        expected_exit_minutes=expected_exit,
        surplus_minutes=calculate_surplus(last_out, expected_exit),
        position=dominant_position(resolved, config.default_position),
        lunch_warnings=warnings,
    )
