import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from timeledger.core.config import settings
from timeledger.core.dependencies import get_ledger_config, period_interval, position_filter
from timeledger.db.models import PunchEventRecord
from timeledger.db.session import get_db
from timeledger.schemas.events import (
    PairCreate,
    PairUpdate,
    PairWriteResult,
    PunchEventCreate,
    PunchEventRead,
    PunchEventUpdate,
    PunchEventWriteResult,
)
from timeledger.schemas.ledger import DateInterval, LedgerConfig, LunchOutOfBounds, Position
from timeledger.services import event_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=list[PunchEventRead],
    summary="Raw punch events for a period",
)
async def list_events(
    interval: DateInterval = Depends(period_interval),
    position: Position | None = Depends(position_filter),
    db: AsyncSession = Depends(get_db),
) -> list[PunchEventRead]:
    records = await event_store.fetch_records(db, interval, position)
    records.sort(key=lambda r: (r.day, r.time_of_day, r.id))
    return [event_store.to_read(record) for record in records]


@router.post(
    "",
    response_model=PunchEventWriteResult,
    status_code=status.HTTP_201_CREATED,
    summary="Record a clock IN or OUT punch",
)
async def create_event(
    payload: PunchEventCreate,
    db: AsyncSession = Depends(get_db),
    config: LedgerConfig = Depends(get_ledger_config),
) -> PunchEventWriteResult:
    record = await event_store.add_event(db, payload, config)
    warnings = await _checked_lunch(db, record.day, config, {record.pair})
    await db.commit()
    return PunchEventWriteResult(event=event_store.to_read(record), lunch_warnings=warnings)


@router.post(
    "/pairs",
    response_model=PairWriteResult,
    status_code=status.HTTP_201_CREATED,
    summary="Record a work session (IN, OUT and lunch) in one call",
)
async def create_pair(
    payload: PairCreate,
    db: AsyncSession = Depends(get_db),
    config: LedgerConfig = Depends(get_ledger_config),
) -> PairWriteResult:
    try:
        records = await event_store.add_pair(db, payload, config)
    except ValueError as exc:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    warnings = await _checked_lunch(db, payload.day, config, {r.pair for r in records})
    await db.commit()
    return PairWriteResult(
        events=[event_store.to_read(record) for record in records],
        lunch_warnings=warnings,
    )


@router.patch(
    "/pairs/{day}/{pair_index}",
    response_model=PairWriteResult,
    summary="Edit a reconciled pair, creating its missing IN or OUT",
)
async def edit_pair(
    day: date,
    pair_index: int,
    changes: PairUpdate,
    db: AsyncSession = Depends(get_db),
    config: LedgerConfig = Depends(get_ledger_config),
) -> PairWriteResult:
    try:
        records = await event_store.update_pair(db, day, pair_index, changes, config)
    except LookupError as exc:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ValueError as exc:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    warnings = await _checked_lunch(db, day, config, {r.pair for r in records})
    await db.commit()
    return PairWriteResult(
        events=[event_store.to_read(record) for record in records],
        lunch_warnings=warnings,
    )


@router.patch(
    "/{event_id}",
    response_model=PunchEventWriteResult,
    summary="Edit a punch event",
)
async def edit_event(
    event_id: int,
    changes: PunchEventUpdate,
    db: AsyncSession = Depends(get_db),
    config: LedgerConfig = Depends(get_ledger_config),
) -> PunchEventWriteResult:
    existing = await db.get(PunchEventRecord, event_id)
    if existing is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    old_day = existing.day

    try:
        record = await event_store.update_event(db, event_id, changes, config)
    except ValueError as exc:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    warnings = await _checked_lunch(db, record.day, config, {record.pair})
    if old_day != record.day:
        # The date the event left is re-paired too
        warnings += await _checked_lunch(db, old_day, config)
    await db.commit()
    return PunchEventWriteResult(event=event_store.to_read(record), lunch_warnings=warnings)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a punch event",
)
async def remove_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    config: LedgerConfig = Depends(get_ledger_config),
) -> Response:
    day = await event_store.delete_event(db, event_id, config)
    if day is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/pairs/{day}/{pair_index}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete both events of a reconciled pair",
)
async def remove_pair(
    day: date,
    pair_index: int,
    db: AsyncSession = Depends(get_db),
    config: LedgerConfig = Depends(get_ledger_config),
) -> Response:
    try:
        await event_store.delete_pair(db, day, pair_index, config)
    except LookupError as exc:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _checked_lunch(
    db: AsyncSession,
    day: date,
    config: LedgerConfig,
    pair_indices: set[int] | None = None,
) -> list[LunchOutOfBounds]:
    """
    Lunch warnings of ``day``, restricted to ``pair_indices`` when given.

    With ENFORCE_LUNCH_BOUNDS the write is rolled back and rejected instead.
    """
    report = await event_store.day_report(db, day, config)
    if report is None:
        return []
    warnings = [
        w for w in report.lunch_warnings if pair_indices is None or w.pair_index in pair_indices
    ]
    if warnings and settings.ENFORCE_LUNCH_BOUNDS:
        await db.rollback()
        logger.warning("Write rejected: %s", warnings[0].message)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[w.message for w in warnings],
        )
    return warnings
