from datetime import date, datetime, time

from pydantic import BaseModel, Field, field_validator, model_validator

from timeledger.schemas.ledger import EventKind, LunchOutOfBounds, Position


class PunchEventCreate(BaseModel):
    day: date
    time_of_day: time
    kind: EventKind
    position: Position | None = None
    lunch_minutes: int | None = Field(default=None, ge=0)
    work_gap: bool | None = None

    @field_validator("position", mode="before")
    @classmethod
    def position_code(cls, v: object) -> object:
        if isinstance(v, str):
            return Position.from_code(v)
        return v

    @field_validator("time_of_day")
    @classmethod
    def whole_minutes(cls, v: time) -> time:
        return v.replace(second=0, microsecond=0)

    @model_validator(mode="after")
    def work_gap_on_out_only(self) -> "PunchEventCreate":
        if self.kind == "in" and self.work_gap is not None:
            raise ValueError("work_gap is only meaningful on 'out' events")
        return self


class PunchEventUpdate(BaseModel):
    day: date | None = None
    time_of_day: time | None = None
    position: Position | None = None
    lunch_minutes: int | None = Field(default=None, ge=0)
    work_gap: bool | None = None

    @field_validator("position", mode="before")
    @classmethod
    def position_code(cls, v: object) -> object:
        if isinstance(v, str):
            return Position.from_code(v)
        return v

    @field_validator("time_of_day")
    @classmethod
    def whole_minutes(cls, v: time | None) -> time | None:
        if v is None:
            return v
        return v.replace(second=0, microsecond=0)


class PunchEventRead(BaseModel):
    id: int
    day: date
    time_of_day: time
    kind: EventKind
    position: Position
    lunch_minutes: int | None
    work_gap: bool | None
    pair: int
    source: str
    created_at: datetime


class PunchEventWriteResult(BaseModel):
    event: PunchEventRead
    lunch_warnings: list[LunchOutOfBounds]


class PairCreate(BaseModel):
    """
    One work session entered in a single call.

    ``lunch_minutes`` alone sets the lunch of the day's latest event.
    """

    day: date
    position: Position | None = None
    in_time: time | None = None
    out_time: time | None = None
    lunch_minutes: int | None = Field(default=None, ge=0)
    work_gap: bool | None = None

    @field_validator("position", mode="before")
    @classmethod
    def position_code(cls, v: object) -> object:
        if isinstance(v, str):
            return Position.from_code(v)
        return v

    @field_validator("in_time", "out_time")
    @classmethod
    def whole_minutes(cls, v: time | None) -> time | None:
        if v is None:
            return v
        return v.replace(second=0, microsecond=0)

    @model_validator(mode="after")
    def something_to_write(self) -> "PairCreate":
        if self.in_time is None and self.out_time is None and self.lunch_minutes is None:
            raise ValueError("Nothing to do: give at least in_time, out_time or lunch_minutes")
        if self.in_time is not None and self.out_time is not None and self.out_time <= self.in_time:
            raise ValueError("out_time must be later than in_time")
        if self.work_gap is not None and self.out_time is None:
            raise ValueError("work_gap needs an out_time")
        return self


class PairUpdate(BaseModel):
    """Changes to a reconciled pair; a missing IN or OUT is created from its time."""

    position: Position | None = None
    in_time: time | None = None
    out_time: time | None = None
    lunch_minutes: int | None = Field(default=None, ge=0)
    work_gap: bool | None = None

    @field_validator("position", mode="before")
    @classmethod
    def position_code(cls, v: object) -> object:
        if isinstance(v, str):
            return Position.from_code(v)
        return v

    @field_validator("in_time", "out_time")
    @classmethod
    def whole_minutes(cls, v: time | None) -> time | None:
        if v is None:
            return v
        return v.replace(second=0, microsecond=0)


class PairWriteResult(BaseModel):
    events: list[PunchEventRead]
    lunch_warnings: list[LunchOutOfBounds]
