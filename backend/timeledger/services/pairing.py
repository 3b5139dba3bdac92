"""
Pair reconciler.

Scans one day's sorted events once, keeping a single open IN slot:

  IN  with a slot open  → the open IN is closed alone, the new IN opens the slot
  OUT with a slot open  → matched pair
  OUT with no slot open → OUT-only pair
  end of day, slot open → trailing IN-only pair

Pair indices are assigned in the order pairs are closed, starting at 1.
Storage calls ``reconcile_day`` after every mutation to persist the indices.
"""

import logging
from collections.abc import Sequence

from timeledger.schemas.ledger import Pair, Position, PunchEvent

logger = logging.getLogger(__name__)


def resolve_position(
    in_event: PunchEvent | None,
    out_event: PunchEvent | None,
    inherited: Position | None,
    default: Position,
) -> Position:
    """First present value of: IN position, OUT position, day's previous pair, default."""
    candidates = (
        in_event.position if in_event is not None else None,
        out_event.position if out_event is not None else None,
        inherited,
    )
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return default


def recorded_lunch(in_event: PunchEvent | None, out_event: PunchEvent | None) -> int | None:
    for event in (in_event, out_event):
        if event is not None and event.lunch_minutes is not None:
            return event.lunch_minutes
    return None


def reconcile_day(
    events: Sequence[PunchEvent],
    default_position: Position = Position.OFFICE,
) -> list[Pair]:
    """Pair one date's chronologically sorted events."""
    if not events:
        return []

    day = events[0].day
    if any(event.day != day for event in events):
        raise ValueError("reconcile_day expects events of a single date")

    pairs: list[Pair] = []
    inherited: Position | None = None

    def close(in_event: PunchEvent | None, out_event: PunchEvent | None) -> None:
        nonlocal inherited
        position = resolve_position(in_event, out_event, inherited, default_position)
        inherited = position
        pairs.append(
            Pair(
                day=day,
                index=len(pairs) + 1,
                in_event=in_event,
                out_event=out_event,
                position=position,
                lunch_minutes=recorded_lunch(in_event, out_event),
            )
        )

    open_in: PunchEvent | None = None
    for event in events:
        if event.kind == "in":
            if open_in is not None:
                close(open_in, None)
            open_in = event
        elif open_in is not None:
            close(open_in, event)
            open_in = None
        else:
            close(None, event)

    if open_in is not None:
        close(open_in, None)

    unmatched = sum(1 for pair in pairs if pair.unmatched)
    if unmatched:
        logger.debug("%s: %d events → %d pairs (%d unmatched)", day, len(events), len(pairs), unmatched)
    return pairs


def unmatched_events(pairs: Sequence[Pair]) -> list[PunchEvent]:
    """Single events left without a counterpart, in pair order."""
    orphans: list[PunchEvent] = []
    for pair in pairs:
        if not pair.unmatched:
            continue
        orphans.extend(event for event in (pair.in_event, pair.out_event) if event is not None)
    return orphans
