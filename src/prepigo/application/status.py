"""
Item status classification.

A deterministic projection of an item's memory state; nothing is stored.
"""

from prepigo.domain.constants import DEFAULT_MATURITY_THRESHOLD_DAYS
from prepigo.domain.models import (
    FsrsState,
    Item,
    ItemStatus,
    SchedulerName,
    Sm2Phase,
    Sm2State,
    State,
)


def get_item_status(
    item: Item,
    scheduler: SchedulerName,
    maturity_threshold_days: int = DEFAULT_MATURITY_THRESHOLD_DAYS,
) -> ItemStatus:
    """
    Classify an item as New, Learning, Relearning, Young, Mature or Suspended.

    Suspension wins over any memory state. Review items are Young while
    their FSRS stability (or SM-2 interval) is below the maturity threshold.
    A missing slot, or one of the wrong shape for `scheduler`, reads as New.
    """
    if item.is_suspended:
        return ItemStatus.SUSPENDED

    state = item.memory(scheduler)

    if scheduler in ("fsrs", "fsrs6"):
        if not isinstance(state, FsrsState) or state.state == State.NEW:
            return ItemStatus.NEW
        if state.state == State.LEARNING:
            return ItemStatus.LEARNING
        if state.state == State.RELEARNING:
            return ItemStatus.RELEARNING
        return ItemStatus.YOUNG if state.stability < maturity_threshold_days else ItemStatus.MATURE

    if not isinstance(state, Sm2State) or not state.state:
        return ItemStatus.NEW
    phase = Sm2Phase(state.state)
    if phase == Sm2Phase.LEARNING:
        return ItemStatus.LEARNING
    if phase == Sm2Phase.RELEARNING:
        return ItemStatus.RELEARNING
    if phase == Sm2Phase.REVIEW:
        return ItemStatus.YOUNG if (state.interval or 0) < maturity_threshold_days else ItemStatus.MATURE
    return ItemStatus.NEW
