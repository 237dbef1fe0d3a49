"""
Exam scoping, quotas and progress.

An exam never touches memory state. It only decides which new items are
worth introducing early so the whole scope has been seen by the deadline.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta

from prepigo.domain.errors import ContainerNotFound
from prepigo.domain.models import Container, Exam, FsrsState, Item, State
from prepigo.domain.settings import SrsSettings

from .settings_resolver import resolve_settings
from .tree import find_container, iter_containers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopedItem:
    """An item in an exam's scope, with the settings of its container."""

    item: Item
    container: Container
    settings: SrsSettings


@dataclass(frozen=True)
class ExamProgress:
    mastered: int
    total: int
    percentage: int


@dataclass(frozen=True)
class ScheduledDay:
    """One day of an exam study plan."""

    day: date
    item_ids: tuple[str, ...]


def exam_scope(
    exam: Exam,
    forest: list[Container] | tuple[Container, ...],
    global_settings: SrsSettings,
) -> list[ScopedItem]:
    """
    Items an exam covers, deduplicated, in encounter order.

    The scope is the union of the listed containers' subtrees, then narrowed
    by the tag filter ('any' or 'all' of `exam.tags`) and, when a difficulty
    bound is set, to reviewed items whose FSRS difficulty lies in range.
    Unknown container ids are skipped.
    """
    scoped: list[ScopedItem] = []
    seen: set[str] = set()

    for container_id in exam.container_ids:
        try:
            root = find_container(forest, container_id)
        except ContainerNotFound as e:
            logger.debug(f"Exam {exam.id}: {e}")
            continue

        for node in iter_containers([root]):
            settings = resolve_settings(forest, node.id, global_settings)
            for item in node.items:
                if item.id in seen:
                    continue
                seen.add(item.id)
                if _matches_tags(exam, item) and _matches_difficulty(exam, item, settings):
                    scoped.append(ScopedItem(item=item, container=node, settings=settings))

    return scoped


def _matches_tags(exam: Exam, item: Item) -> bool:
    if not exam.tags:
        return True
    if exam.tag_filter == "any":
        return bool(exam.tags & item.tags)
    return exam.tags <= item.tags


def _matches_difficulty(exam: Exam, item: Item, settings: SrsSettings) -> bool:
    if exam.difficulty_min is None and exam.difficulty_max is None:
        return True
    state = item.srs.fsrs6 if settings.scheduler == "fsrs6" else item.srs.fsrs
    if not isinstance(state, FsrsState) or state.state == State.NEW:
        return False
    lo = exam.difficulty_min if exam.difficulty_min is not None else 1.0
    hi = exam.difficulty_max if exam.difficulty_max is not None else 10.0
    return lo <= state.difficulty <= hi


def days_left(exam: Exam, today: date) -> int:
    """Calendar days from `today` until the exam (zero or negative once it has arrived)."""
    return (exam.date - today).days


def daily_new_quota(pool: int, remaining_days: int) -> int:
    """
    New items to introduce today so that `pool` is exhausted by the deadline.

    On or after the exam day the whole pool is due at once.
    """
    if pool <= 0:
        return 0
    if remaining_days <= 0:
        return pool
    return math.ceil(pool / remaining_days)


def exam_progress(
    exam: Exam,
    forest: list[Container] | tuple[Container, ...],
    global_settings: SrsSettings,
) -> ExamProgress:
    """
    Share of the scope that will not come due again before the exam.

    An empty scope counts as fully mastered.
    """
    scope = exam_scope(exam, forest, global_settings)
    if not scope:
        return ExamProgress(mastered=0, total=0, percentage=100)

    mastered = 0
    for entry in scope:
        state = entry.item.memory(entry.settings.scheduler)
        if state is not None and state.due.date() > exam.date:
            mastered += 1

    return ExamProgress(
        mastered=mastered,
        total=len(scope),
        percentage=round(mastered * 100 / len(scope)),
    )


def plan_exam_schedule(item_ids: list[str], exam_date: date, today: date) -> list[ScheduledDay]:
    """
    Spread items evenly over the days from `today` through the exam day.

    Returns an empty plan for a past exam or an empty item list.
    """
    remaining = (exam_date - today).days
    if remaining < 0 or not item_ids:
        return []

    num_days = remaining + 1
    per_day = math.ceil(len(item_ids) / num_days)
    return [
        ScheduledDay(
            day=today + timedelta(days=i),
            item_ids=tuple(item_ids[i * per_day : (i + 1) * per_day]),
        )
        for i in range(num_days)
    ]
