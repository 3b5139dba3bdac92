"""
Period resolver.

Turns a user-supplied period expression into a closed ``DateInterval``.
The same resolver backs event listing and reports so both select exactly
the same dates.

Accepted expressions:
  YYYY                    whole calendar year
  YYYY-MM                 whole calendar month
  YYYY-MM-DD              single day
  A:B                     both sides in the same form, A's start to B's end
  all                     entire history
"""

import calendar
import logging
import re
from datetime import date

from timeledger.schemas.ledger import DateInterval

logger = logging.getLogger(__name__)

ALL_PERIOD = "all"

ACCEPTED_FORMATS: tuple[str, ...] = (
    "YYYY",
    "YYYY-MM",
    "YYYY-MM-DD",
    "YYYY:YYYY",
    "YYYY-MM:YYYY-MM",
    "YYYY-MM-DD:YYYY-MM-DD",
    ALL_PERIOD,
)

_YEAR_RE = re.compile(r"^(\d{4})$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_DAY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


class MalformedPeriod(ValueError):
    """The period expression (or one side of a range) could not be resolved."""

    accepted_formats = ACCEPTED_FORMATS

    def __init__(self, token: str, reason: str) -> None:
        self.token = token
        self.reason = reason
        super().__init__(f"{reason}: '{token}'")


class InvertedRange(MalformedPeriod):
    """Range whose end lies before its start."""


def resolve_period(expression: str | None, today: date | None = None) -> DateInterval:
    """
    Resolve ``expression`` into a ``DateInterval``.

    Args:
        expression: Period expression; ``None`` selects the current month.
        today: Reference date for the default month (system clock if omitted).

    Raises:
        MalformedPeriod: unparsable input or mismatched range sides.
        InvertedRange: range end before range start.
    """
    if expression is None:
        return DateInterval.current_month(today)

    text = expression.strip()
    if not text:
        raise MalformedPeriod(expression, "Empty period expression")
    if text.lower() == ALL_PERIOD:
        return DateInterval.unbounded()

    if ":" not in text:
        _, interval = _resolve_unit(text)
        return interval

    start_raw, _, end_raw = text.partition(":")
    if ":" in end_raw:
        raise MalformedPeriod(text, "A range takes exactly one ':' separator")
    if not start_raw.strip() or not end_raw.strip():
        raise MalformedPeriod(text, "A range needs both a start and an end")

    start_form, start = _resolve_unit(start_raw.strip())
    end_form, end = _resolve_unit(end_raw.strip())
    if start_form != end_form:
        raise MalformedPeriod(text, "Range start and end must use the same format")
    if end.end < start.start:
        raise InvertedRange(text, "Range end precedes range start")

    interval = DateInterval(start=start.start, end=end.end)
    logger.debug("Period '%s' resolved to %s..%s", text, interval.start, interval.end)
    return interval


def _resolve_unit(token: str) -> tuple[str, DateInterval]:
    """Resolve one year/month/day token; returns its form name and interval."""
    if not token:
        raise MalformedPeriod(token, "Missing period value")

    match = _YEAR_RE.match(token)
    if match:
        year = int(match.group(1))
        return "year", _interval(token, year, 1, 1, year, 12, 31)

    match = _MONTH_RE.match(token)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise MalformedPeriod(token, "Invalid month")
        _, last = calendar.monthrange(year, month)
        return "month", _interval(token, year, month, 1, year, month, last)

    match = _DAY_RE.match(token)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return "day", _interval(token, year, month, day, year, month, day)

    raise MalformedPeriod(token, "Unsupported period format")


def _interval(
    token: str,
    start_year: int,
    start_month: int,
    start_day: int,
    end_year: int,
    end_month: int,
    end_day: int,
) -> DateInterval:
    try:
        start = date(start_year, start_month, start_day)
        end = date(end_year, end_month, end_day)
    except ValueError:
        raise MalformedPeriod(token, "Date out of range") from None
    return DateInterval(start=start, end=end)
