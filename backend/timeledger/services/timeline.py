import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date

from timeledger.schemas.ledger import PunchEvent

logger = logging.getLogger(__name__)


def event_sort_key(event: PunchEvent) -> tuple:
    return (event.time_of_day, event.id)


def build_timeline(events: Iterable[PunchEvent]) -> dict[date, list[PunchEvent]]:
    """
    Group events by calendar date, each day sorted by time of day then id.

    Dates without events are absent; the mapping iterates in date order.
    """
    grouped: dict[date, list[PunchEvent]] = defaultdict(list)
    for event in events:
        grouped[event.day].append(event)

    timeline: dict[date, list[PunchEvent]] = {}
    for day in sorted(grouped):
        timeline[day] = sorted(grouped[day], key=event_sort_key)

    logger.debug(
        "Timeline built: %d days, %d events",
        len(timeline), sum(len(day_events) for day_events in timeline.values()),
    )
    return timeline
