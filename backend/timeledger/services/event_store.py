"""
SQL event store.

Supplies event snapshots to the reconciliation engine and keeps the stored
``pair`` column in line with it: every write touching a date is followed by
``recompute_pairs_for_date``, which reuses the engine's reconciler.
"""

import logging
from datetime import date, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timeledger.db.models import PunchEventRecord
from timeledger.schemas.events import (
    PairCreate,
    PairUpdate,
    PunchEventCreate,
    PunchEventRead,
    PunchEventUpdate,
)
from timeledger.schemas.ledger import (
    DailyReport,
    DateInterval,
    LedgerConfig,
    Pair,
    Position,
    PunchEvent,
)
from timeledger.services.calculator import build_daily_report
from timeledger.services.pairing import reconcile_day
from timeledger.services.timeline import event_sort_key

logger = logging.getLogger(__name__)


def to_read(record: PunchEventRecord) -> PunchEventRead:
    return PunchEventRead(
        id=record.id,
        day=record.day,
        time_of_day=record.time_of_day,
        kind=record.kind,
        position=Position.from_code(record.position),
        lunch_minutes=record.lunch_break,
        work_gap=record.work_gap,
        pair=record.pair,
        source=record.source,
        created_at=record.created_at,
    )


async def fetch_records(
    db: AsyncSession, interval: DateInterval, position: Position | None = None
) -> list[PunchEventRecord]:
    stmt = select(PunchEventRecord)
    if not interval.is_unbounded:
        stmt = stmt.where(PunchEventRecord.day.between(interval.start, interval.end))
    if position is not None:
        stmt = stmt.where(PunchEventRecord.position == position.value)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def fetch_events(db: AsyncSession, interval: DateInterval) -> list[PunchEvent]:
    """Events within ``interval``; no ordering is guaranteed."""
    return [record.to_event() for record in await fetch_records(db, interval)]


async def load_day(db: AsyncSession, day: date) -> list[PunchEventRecord]:
    result = await db.execute(select(PunchEventRecord).where(PunchEventRecord.day == day))
    return list(result.scalars().all())


async def recompute_pairs_for_date(
    db: AsyncSession,
    day: date,
    default_position: Position = Position.OFFICE,
) -> list[Pair]:
    """Reconcile ``day`` and persist each event's pair index."""
    records = {record.id: record for record in await load_day(db, day)}
    events = sorted((record.to_event() for record in records.values()), key=event_sort_key)
    pairs = reconcile_day(events, default_position)

    for pair in pairs:
        for event in (pair.in_event, pair.out_event):
            if event is not None:
                records[event.id].pair = pair.index

    await db.flush()
    logger.info("Pairs recomputed for %s: %d events → %d pairs", day, len(events), len(pairs))
    return pairs


async def day_report(db: AsyncSession, day: date, config: LedgerConfig) -> DailyReport | None:
    events = sorted((record.to_event() for record in await load_day(db, day)), key=event_sort_key)
    if not events:
        return None
    return build_daily_report(day, reconcile_day(events, config.default_position), config)


async def _inherited_position(db: AsyncSession, payload: PunchEventCreate) -> Position | None:
    """Position of the latest IN at or before an OUT on the same date."""
    result = await db.execute(
        select(PunchEventRecord.position)
        .where(
            PunchEventRecord.day == payload.day,
            PunchEventRecord.kind == "in",
            PunchEventRecord.time_of_day <= payload.time_of_day,
        )
        .order_by(PunchEventRecord.time_of_day.desc(), PunchEventRecord.id.desc())
        .limit(1)
    )
    code = result.scalar_one_or_none()
    return Position.from_code(code) if code is not None else None


def _new_record(
    day: date,
    time_of_day: time,
    kind: str,
    position: Position,
    lunch_minutes: int | None = None,
    work_gap: bool | None = None,
) -> PunchEventRecord:
    return PunchEventRecord(
        day=day,
        time_of_day=time_of_day,
        kind=kind,
        position=position.value,
        lunch_break=lunch_minutes,
        work_gap=work_gap,
        source="api",
    )


async def add_event(
    db: AsyncSession, payload: PunchEventCreate, config: LedgerConfig
) -> PunchEventRecord:
    position = payload.position
    if position is None and payload.kind == "out":
        position = await _inherited_position(db, payload)
    if position is None:
        position = config.default_position

    record = _new_record(
        payload.day, payload.time_of_day, payload.kind, position,
        lunch_minutes=payload.lunch_minutes, work_gap=payload.work_gap,
    )
    db.add(record)
    await db.flush()
    logger.info(
        "Event added: id=%s %s %s %s (%s)",
        record.id, record.day, record.time_of_day.strftime("%H:%M"), record.kind, record.position,
    )

    await recompute_pairs_for_date(db, record.day, config.default_position)
    return record


async def update_event(
    db: AsyncSession, event_id: int, changes: PunchEventUpdate, config: LedgerConfig
) -> PunchEventRecord | None:
    record = await db.get(PunchEventRecord, event_id)
    if record is None:
        return None

    fields = changes.model_dump(exclude_unset=True)
    if fields.get("work_gap") is not None and record.kind == "in":
        raise ValueError("work_gap is only meaningful on 'out' events")

    old_day = record.day
    if "day" in fields and fields["day"] is not None:
        record.day = fields["day"]
    if "time_of_day" in fields and fields["time_of_day"] is not None:
        record.time_of_day = fields["time_of_day"]
    if "position" in fields and fields["position"] is not None:
        record.position = fields["position"].value
    if "lunch_minutes" in fields:
        record.lunch_break = fields["lunch_minutes"]
    if "work_gap" in fields:
        record.work_gap = fields["work_gap"]
    await db.flush()
    logger.info("Event updated: id=%s fields=%s", record.id, sorted(fields))

    await recompute_pairs_for_date(db, record.day, config.default_position)
    if old_day != record.day:
        await recompute_pairs_for_date(db, old_day, config.default_position)
    return record


async def add_pair(
    db: AsyncSession, payload: PairCreate, config: LedgerConfig
) -> list[PunchEventRecord]:
    """
    Record a work session in one call.

      lunch_minutes only  → set the lunch of the day's latest event
      in_time only        → new IN
      out_time only       → new OUT closing the day's latest IN
      in_time + out_time  → new IN/OUT pair, lunch stored on the IN

    Raises ``ValueError`` when there is nothing to attach to or the OUT does
    not follow its IN.
    """
    records = sorted(await load_day(db, payload.day), key=lambda r: (r.time_of_day, r.id))

    if payload.in_time is None and payload.out_time is None:
        if not records:
            raise ValueError(f"Cannot set lunch on {payload.day}: no events recorded")
        latest = records[-1]
        latest.lunch_break = payload.lunch_minutes
        await db.flush()
        logger.info("Lunch set to %s min on event id=%s (%s)", payload.lunch_minutes, latest.id, payload.day)
        await recompute_pairs_for_date(db, payload.day, config.default_position)
        return [latest]

    written: list[PunchEventRecord] = []
    if payload.in_time is not None:
        position = payload.position or config.default_position
        written.append(
            _new_record(payload.day, payload.in_time, "in", position, lunch_minutes=payload.lunch_minutes)
        )
        out_lunch = None
    else:
        last_in = next((r for r in reversed(records) if r.kind == "in"), None)
        if last_in is None:
            raise ValueError(f"Cannot add an OUT on {payload.day} without a previous IN")
        if payload.out_time <= last_in.time_of_day:
            raise ValueError("OUT must be later than the IN it closes")
        position = payload.position or Position.from_code(last_in.position)
        out_lunch = payload.lunch_minutes

    if payload.out_time is not None:
        written.append(
            _new_record(
                payload.day, payload.out_time, "out", position,
                lunch_minutes=out_lunch, work_gap=payload.work_gap,
            )
        )

    db.add_all(written)
    await db.flush()
    logger.info(
        "Session added on %s: %s",
        payload.day, ", ".join(f"{r.kind} {r.time_of_day.strftime('%H:%M')}" for r in written),
    )
    await recompute_pairs_for_date(db, payload.day, config.default_position)
    return written


async def update_pair(
    db: AsyncSession, day: date, pair_index: int, changes: PairUpdate, config: LedgerConfig
) -> list[PunchEventRecord]:
    """
    Edit the ``pair_index``-th pair of ``day`` in place.

    A position applies to both sides. A time for a missing side creates that
    event. Raises ``LookupError`` for an unknown pair and ``ValueError`` when
    the result would not be a valid pair.
    """
    pairs = await recompute_pairs_for_date(db, day, config.default_position)
    pair = next((p for p in pairs if p.index == pair_index), None)
    if pair is None:
        raise LookupError(f"No pair {pair_index} on {day}")

    in_rec = await db.get(PunchEventRecord, pair.in_event.id) if pair.in_event else None
    out_rec = await db.get(PunchEventRecord, pair.out_event.id) if pair.out_event else None
    fields = changes.model_dump(exclude_unset=True)
    position = changes.position or pair.position
    created: list[PunchEventRecord] = []

    if changes.in_time is not None:
        if in_rec is None:
            in_rec = _new_record(day, changes.in_time, "in", position)
            created.append(in_rec)
        else:
            in_rec.time_of_day = changes.in_time
    if changes.out_time is not None:
        if out_rec is None:
            out_rec = _new_record(day, changes.out_time, "out", position)
            created.append(out_rec)
        else:
            out_rec.time_of_day = changes.out_time

    if in_rec is not None and out_rec is not None and out_rec.time_of_day <= in_rec.time_of_day:
        raise ValueError("OUT must be later than IN")
    if fields.get("work_gap") is not None and out_rec is None:
        raise ValueError("work_gap is only meaningful on a pair with an OUT")

    if changes.position is not None:
        for record in (in_rec, out_rec):
            if record is not None:
                record.position = changes.position.value
    if "lunch_minutes" in fields:
        # A recorded lunch is read from the IN first
        target, other = (in_rec, out_rec) if in_rec is not None else (out_rec, None)
        target.lunch_break = fields["lunch_minutes"]
        if other is not None:
            other.lunch_break = None
    if "work_gap" in fields:
        out_rec.work_gap = fields["work_gap"]

    db.add_all(created)
    await db.flush()
    logger.info("Pair %d updated on %s: fields=%s, created=%d", pair_index, day, sorted(fields), len(created))

    await recompute_pairs_for_date(db, day, config.default_position)
    return [record for record in (in_rec, out_rec) if record is not None]


async def delete_event(db: AsyncSession, event_id: int, config: LedgerConfig) -> date | None:
    """Delete one event; returns its date, or ``None`` when it does not exist."""
    record = await db.get(PunchEventRecord, event_id)
    if record is None:
        return None

    day = record.day
    await db.delete(record)
    await db.flush()
    logger.info("Event deleted: id=%s (%s)", event_id, day)

    await recompute_pairs_for_date(db, day, config.default_position)
    return day


async def delete_pair(
    db: AsyncSession, day: date, pair_index: int, config: LedgerConfig
) -> list[int]:
    """
    Delete both sides of the ``pair_index``-th reconciled pair of ``day``.

    Returns the ids of the deleted events. Raises ``LookupError`` when the
    date has no such pair.
    """
    pairs = await recompute_pairs_for_date(db, day, config.default_position)
    pair = next((p for p in pairs if p.index == pair_index), None)
    if pair is None:
        raise LookupError(f"No pair {pair_index} on {day}")

    deleted: list[int] = []
    for event in (pair.in_event, pair.out_event):
        if event is None:
            continue
        record = await db.get(PunchEventRecord, event.id)
        if record is not None:
            await db.delete(record)
            deleted.append(event.id)
    await db.flush()
    logger.info("Pair %d deleted on %s (events %s)", pair_index, day, deleted)

    await recompute_pairs_for_date(db, day, config.default_position)
    return deleted
