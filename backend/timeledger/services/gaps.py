from collections.abc import Sequence

from timeledger.schemas.ledger import GapDecision, Pair


def classify_gaps(pairs: Sequence[Pair]) -> list[GapDecision]:
    """
    Decide, for each boundary between two matched pairs, whether the time
    between them counts as work.

    The flag is read from the earlier pair's OUT event; when it is absent the
    gap does not count. Boundaries touching an unmatched pair are skipped.
    """
    decisions: list[GapDecision] = []
    for earlier, later in zip(pairs, pairs[1:]):
        if earlier.unmatched or later.unmatched:
            continue
        span = later.in_event.minute_of_day - earlier.out_event.minute_of_day
        decisions.append(
            GapDecision(
                day=earlier.day,
                after_pair=earlier.index,
                span_minutes=max(0, span),
                counts_as_work=bool(earlier.out_event.work_gap),
            )
        )
    return decisions


def working_gap_minutes(decisions: Sequence[GapDecision]) -> int:
    return sum(gap.span_minutes for gap in decisions if gap.counts_as_work)
