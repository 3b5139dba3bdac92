from datetime import date, datetime, time, timezone

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Integer,
    String,
    Time,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from timeledger.schemas.ledger import Position, PunchEvent


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PunchEventRecord(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    day: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    time_of_day: Mapped[time] = mapped_column("time", Time, nullable=False)
    kind: Mapped[str] = mapped_column(
        Enum("in", "out", name="event_kind_enum"), nullable=False
    )
    position: Mapped[str] = mapped_column(String(1), nullable=False, default="O")
    lunch_break: Mapped[int | None] = mapped_column(Integer, nullable=True)
    work_gap: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    # Recomputed after every write touching the date; 0 until then
    pair: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="api")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def to_event(self) -> PunchEvent:
        return PunchEvent(
            id=self.id,
            day=self.day,
            time_of_day=self.time_of_day,
            kind=self.kind,
            position=Position.from_code(self.position),
            lunch_minutes=self.lunch_break,
            work_gap=self.work_gap,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return (
            f"<PunchEventRecord id={self.id} date={self.day} time={self.time_of_day} "
            f"kind={self.kind} pair={self.pair}>"
        )
