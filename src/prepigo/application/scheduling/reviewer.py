"""
Review transitions for a single item.

Applies one rating to the memory slot of the active scheduler, walks the
(re)learning steps, and returns a new Item copy plus a review log row.
The input item is never mutated.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta

from prepigo.domain.constants import MINUTES_PER_DAY, SECONDS_PER_DAY
from prepigo.domain.errors import StateError
from prepigo.domain.models import (
    FsrsState,
    Item,
    MemoryState,
    Rating,
    ReviewLog,
    ReviewResult,
    Sm2Phase,
    Sm2State,
    State,
)
from prepigo.domain.settings import SrsSettings

from .fsrs import next_memory, round_half_up
from .sm2 import rating_to_quality, sm2_update
from .steps import parse_steps

logger = logging.getLogger(__name__)


def review_item(
    item: Item,
    rating: Rating | int,
    settings: SrsSettings,
    now: datetime,
    duration_ms: int | None = None,
) -> ReviewResult:
    """
    Review `item` with `rating` under the scheduler chosen by `settings`.

    Only the slot matching `settings.scheduler` is read and replaced; the
    other slots are carried over untouched.

    Args:
        item: The item being reviewed.
        rating: 1=Again, 2=Hard, 3=Good, 4=Easy.
        settings: Effective settings for the item's container.
        now: Review timestamp.
        duration_ms: Optional answer time, copied into the log.

    Returns:
        ReviewResult with the updated item and its log entry.
    """
    rating = Rating(rating)
    scheduler = settings.scheduler

    new_state: MemoryState
    if scheduler == "sm2":
        prev_sm2 = _current_slot(item, scheduler, Sm2State)
        new_state, log = _review_sm2(item.id, prev_sm2, rating, settings, now)
    else:
        prev_fsrs = _current_slot(item, scheduler, FsrsState)
        new_state, log = _review_fsrs(item, prev_fsrs, rating, settings, now)

    if duration_ms is not None:
        log = replace(log, duration_ms=duration_ms)

    slots = replace(item.srs, **{scheduler: new_state})
    return ReviewResult(item=replace(item, srs=slots), log=log)


def _current_slot(item: Item, scheduler: str, expected: type) -> MemoryState | None:
    """The item's state for `scheduler`, or None when it must be treated as new."""
    state = item.srs.slot_for(scheduler)  # type: ignore[arg-type]
    if state is None:
        return None
    try:
        _check_shape(state, expected)
    except StateError as e:
        logger.debug(f"Treating item {item.id} as new: {e}")
        return None
    return state


def _check_shape(state: object, expected: type) -> None:
    if not isinstance(state, expected):
        raise StateError(f"expected {expected.__name__}, found {type(state).__name__}")


def _days_between(earlier: datetime | None, later: datetime) -> float:
    if earlier is None:
        return 0.0
    return max(0.0, (later - earlier).total_seconds() / SECONDS_PER_DAY)


def _next_step(steps: list[float], index: int, rating: Rating) -> int | None:
    """
    Index of the step to wait on next, or None when the item graduates.

    Again restarts, Hard repeats the current step, Good advances, Easy
    (or an empty step list) graduates immediately.
    """
    if not steps or rating == Rating.EASY:
        return None
    if rating == Rating.AGAIN:
        return 0
    if rating == Rating.HARD:
        return min(index, len(steps) - 1)
    nxt = index + 1
    if nxt >= len(steps):
        return None
    return nxt


# ---------------------------------------------------------------------------
# FSRS
# ---------------------------------------------------------------------------


def _review_fsrs(
    item: Item,
    prev: FsrsState | None,
    rating: Rating,
    settings: SrsSettings,
    now: datetime,
) -> tuple[FsrsState, ReviewLog]:
    scheduler = settings.scheduler
    params = settings.fsrs_params_for(item.kind, scheduler)

    if prev is None or prev.state == State.NEW:
        phase, stability, difficulty = State.NEW, None, None
        elapsed, current_step = 0.0, 0
    else:
        phase, stability, difficulty = State(prev.state), prev.stability, prev.difficulty
        elapsed, current_step = _days_between(prev.last_review, now), prev.learning_steps

    memory = next_memory(stability, difficulty, rating, elapsed, params, scheduler)  # type: ignore[arg-type]
    lapses = prev.lapses if prev is not None else 0
    reps = prev.reps if prev is not None else 0

    if phase in (State.NEW, State.LEARNING, State.RELEARNING):
        steps = parse_steps(
            settings.relearning_steps if phase == State.RELEARNING else settings.learning_steps
        )
        nxt = _next_step(steps, current_step, rating)
        if nxt is None:
            state, step_index, scheduled = State.REVIEW, 0, float(memory.interval)
        else:
            state = State.RELEARNING if phase == State.RELEARNING else State.LEARNING
            step_index, scheduled = nxt, steps[nxt] / MINUTES_PER_DAY
    elif rating == Rating.AGAIN:
        lapses += 1
        relearning = parse_steps(settings.relearning_steps)
        if relearning:
            state, step_index, scheduled = State.RELEARNING, 0, relearning[0] / MINUTES_PER_DAY
        else:
            state, step_index, scheduled = State.REVIEW, 0, float(memory.interval)
    else:
        state, step_index, scheduled = State.REVIEW, 0, float(memory.interval)

    new_state = FsrsState(
        due=now + timedelta(days=scheduled),
        stability=memory.stability,
        difficulty=memory.difficulty,
        elapsed_days=elapsed,
        scheduled_days=scheduled,
        reps=reps + 1,
        lapses=lapses,
        state=state,
        last_review=now,
        learning_steps=step_index,
    )

    log = ReviewLog(
        item_id=item.id,
        rating=rating,
        scheduler=scheduler,
        state=phase.name.lower(),
        due=prev.due if prev is not None else now,
        stability=stability,
        difficulty=difficulty,
        elapsed_days=prev.elapsed_days if prev is not None else 0.0,
        last_elapsed_days=elapsed,
        scheduled_days=scheduled,
        review=now,
    )
    return new_state, log


# ---------------------------------------------------------------------------
# SM-2
# ---------------------------------------------------------------------------


def _review_sm2(
    item_id: str,
    prev: Sm2State | None,
    rating: Rating,
    settings: SrsSettings,
    now: datetime,
) -> tuple[Sm2State, ReviewLog]:
    min_ease = settings.sm2_min_easiness_factor

    if prev is None or Sm2Phase(prev.state) == Sm2Phase.NEW:
        phase = Sm2Phase.NEW
        ease = settings.sm2_starting_ease
        interval, repetitions, step = 1, 0, 0
        lapses = prev.lapses if prev is not None else 0
    else:
        phase = Sm2Phase(prev.state)
        # Imported states may carry an ease below the floor
        ease = max(min_ease, prev.easiness_factor)
        interval = max(1, prev.interval)
        repetitions, lapses, step = prev.repetitions, prev.lapses, prev.learning_step

    if phase in (Sm2Phase.NEW, Sm2Phase.LEARNING, Sm2Phase.RELEARNING):
        steps = parse_steps(
            settings.relearning_steps if phase == Sm2Phase.RELEARNING else settings.learning_steps
        )
        nxt = _next_step(steps, step, rating)
        if nxt is None:
            # Relearning graduates onto the interval computed at the lapse
            if phase != Sm2Phase.RELEARNING:
                interval = (
                    settings.sm2_easy_interval
                    if rating == Rating.EASY
                    else settings.sm2_graduating_interval
                )
            state, step, wait = Sm2Phase.REVIEW, 0, timedelta(days=interval)
        else:
            state = Sm2Phase.RELEARNING if phase == Sm2Phase.RELEARNING else Sm2Phase.LEARNING
            step, wait = nxt, timedelta(minutes=steps[nxt])
    else:
        quality = rating_to_quality(rating)
        prior_repetitions = repetitions
        update = sm2_update(repetitions, ease, interval, quality, min_ease=min_ease)
        ease, repetitions = update.ease_factor, update.repetitions

        if quality < 3:
            lapses += 1
            interval = max(
                settings.sm2_minimum_interval,
                round_half_up(interval * settings.sm2_lapsed_interval_multiplier),
            )
            relearning = parse_steps(settings.relearning_steps)
            if relearning:
                state, step, wait = Sm2Phase.RELEARNING, 0, timedelta(minutes=relearning[0])
            else:
                state, step, wait = Sm2Phase.REVIEW, 0, timedelta(days=interval)
        else:
            interval = _scaled_review_interval(
                interval, prior_repetitions, update.interval, rating, settings
            )
            state, step, wait = Sm2Phase.REVIEW, 0, timedelta(days=interval)

    new_state = Sm2State(
        due=now + wait,
        easiness_factor=ease,
        interval=interval,
        repetitions=repetitions,
        lapses=lapses,
        state=state,
        learning_step=step,
        last_review=now,
    )

    log = ReviewLog(
        item_id=item_id,
        rating=rating,
        scheduler="sm2",
        state=phase.value,
        due=prev.due if prev is not None else now,
        stability=None,
        difficulty=None,
        elapsed_days=0.0,
        last_elapsed_days=_days_between(prev.last_review if prev is not None else None, now),
        scheduled_days=wait.total_seconds() / SECONDS_PER_DAY,
        review=now,
    )
    return new_state, log


def _scaled_review_interval(
    previous: int,
    prior_repetitions: int,
    base: int,
    rating: Rating,
    settings: SrsSettings,
) -> int:
    """Apply the hard multiplier, easy bonus, interval modifier and bounds."""
    interval: float = base
    if rating == Rating.HARD and prior_repetitions >= 2:
        interval = previous * settings.sm2_hard_interval_multiplier
    elif rating == Rating.EASY:
        interval *= settings.sm2_easy_bonus
    interval *= settings.sm2_interval_modifier
    interval = max(settings.sm2_minimum_interval, round_half_up(interval))
    return int(min(settings.sm2_maximum_interval, interval))
