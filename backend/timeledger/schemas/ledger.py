"""
Value types shared by the reconciliation engine, the event store and the API.

Every model here is frozen: the engine borrows immutable snapshots of stored
events and hands back derived values that are recomputed on every query.
"""

import calendar
from datetime import date, datetime, time
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

EventKind = Literal["in", "out"]


class Position(str, Enum):
    OFFICE = "O"
    REMOTE = "R"
    HOLIDAY = "H"
    ON_SITE = "C"
    MIXED = "M"

    @classmethod
    def from_code(cls, code: str) -> "Position":
        """Accept a position code in any case, e.g. ``"r"`` → ``Position.REMOTE``."""
        try:
            return cls(code.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown position code '{code}'") from None

    @property
    def label(self) -> str:
        return _POSITION_LABELS[self]

    @property
    def requires_lunch(self) -> bool:
        return self is not Position.HOLIDAY


_POSITION_LABELS: dict[Position, str] = {
    Position.OFFICE: "Office",
    Position.REMOTE: "Remote",
    Position.HOLIDAY: "Holiday",
    Position.ON_SITE: "On-site (Client)",
    Position.MIXED: "Mixed",
}


class DateInterval(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _ordered(self) -> "DateInterval":
        if self.end < self.start:
            raise ValueError(f"Interval end {self.end} precedes start {self.start}")
        return self

    @classmethod
    def current_month(cls, today: date | None = None) -> "DateInterval":
        """Whole calendar month containing ``today`` (system clock when omitted)."""
        ref = today or date.today()
        _, last = calendar.monthrange(ref.year, ref.month)
        return cls(start=ref.replace(day=1), end=ref.replace(day=last))

    @classmethod
    def unbounded(cls) -> "DateInterval":
        return cls(start=date.min, end=date.max)

    @property
    def is_unbounded(self) -> bool:
        return self.start == date.min and self.end == date.max

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class PunchEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    day: date
    time_of_day: time
    kind: EventKind
    position: Position | None = None
    lunch_minutes: int | None = Field(default=None, ge=0)
    work_gap: bool | None = None
    created_at: datetime | None = None

    @property
    def minute_of_day(self) -> int:
        return self.time_of_day.hour * 60 + self.time_of_day.minute


class Pair(BaseModel):
    """
    One reconciled IN/OUT span of a day.

    ``lunch_minutes`` is ``None`` while no lunch is recorded on either event;
    the calculator fills in the effective value, the per-pair duration and
    ``lunch_auto`` when it deduces the lunch itself.
    """

    model_config = ConfigDict(frozen=True)

    day: date
    index: int = Field(ge=1)
    in_event: PunchEvent | None = None
    out_event: PunchEvent | None = None
    position: Position
    lunch_minutes: int | None = None
    lunch_auto: bool = False
    duration_minutes: int = 0

    @computed_field
    @property
    def unmatched(self) -> bool:
        return self.in_event is None or self.out_event is None

    @property
    def span_minutes(self) -> int | None:
        if self.in_event is None or self.out_event is None:
            return None
        return self.out_event.minute_of_day - self.in_event.minute_of_day


class GapDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    after_pair: int
    span_minutes: int
    counts_as_work: bool


class LunchOutOfBounds(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    pair_index: int
    lunch_minutes: int
    min_minutes: int
    max_minutes: int

    @property
    def message(self) -> str:
        return (
            f"Lunch of {self.lunch_minutes} min on pair {self.pair_index} ({self.day}) "
            f"is outside {self.min_minutes}-{self.max_minutes} min"
        )


class LedgerConfig(BaseModel):
    """Configuration threaded explicitly into the calculator."""

    model_config = ConfigDict(frozen=True)

    default_position: Position = Position.OFFICE
    work_duration_minutes: int = Field(default=8 * 60, ge=0)
    min_lunch_minutes: int = Field(default=30, ge=0)
    max_lunch_minutes: int = Field(default=90, ge=0)
    lunch_window_start: int = 12 * 60 + 30
    lunch_window_end: int = 14 * 60
    auto_lunch: bool = True

    @model_validator(mode="after")
    def _bounds(self) -> "LedgerConfig":
        if self.max_lunch_minutes < self.min_lunch_minutes:
            raise ValueError("max_lunch_minutes must not be lower than min_lunch_minutes")
        if self.lunch_window_end < self.lunch_window_start:
            raise ValueError("Lunch window must end after it starts")
        return self


class DailyReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    pairs: list[Pair]
    gaps: list[GapDecision]
    worked_minutes: int
    lunch_minutes: int
    expected_exit_minutes: int | None
    surplus_minutes: int | None
    position: Position
    lunch_warnings: list[LunchOutOfBounds] = []

    @computed_field
    @property
    def expected_exit(self) -> time | None:
        if self.expected_exit_minutes is None:
            return None
        hours, minutes = divmod(self.expected_exit_minutes % (24 * 60), 60)
        return time(hours, minutes)

    @property
    def has_unmatched(self) -> bool:
        return any(pair.unmatched for pair in self.pairs)


class PeriodReport(BaseModel):
    interval: DateInterval
    days: list[DailyReport]
    total_worked_minutes: int
    total_surplus_minutes: int
    unmatched_days: int
