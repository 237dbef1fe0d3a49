"""
Queue builder for study sessions.

Builds ordered study queues by:
1. Claiming new items for upcoming exams (earliest deadline first)
2. Walking the studied containers with hierarchical new/review budgets
3. Ordering each class (learning, review, new) and combining them
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone

from prepigo.domain.constants import MINUTES_PER_DAY, SECONDS_PER_DAY
from prepigo.domain.models import (
    Container,
    Exam,
    FsrsState,
    Item,
    ItemStatus,
    MemoryState,
    SessionQueue,
    Sm2Phase,
)
from prepigo.domain.settings import SrsSettings

from .exams import daily_new_quota, days_left, exam_scope
from .scheduling.steps import parse_steps
from .settings_resolver import resolve_settings
from .status import get_item_status
from .tree import find_with_ancestors, iter_containers, iter_items_with_container

logger = logging.getLogger(__name__)

# Item classes inside a single container
_NEW = "new"
_REVIEW = "review"
_LEARNING = "learning"


@dataclass
class _Budget:
    """Remaining global budget for one container kind."""

    new: int
    review: int


@dataclass
class _Session:
    """Mutable state threaded through one build."""

    forest: list[Container] | tuple[Container, ...]
    global_settings: SrsSettings
    introduced_today: frozenset[str]
    now: datetime
    rng: random.Random
    seen: set[str] = field(default_factory=set)
    learning: list[tuple[Item, MemoryState]] = field(default_factory=list)
    reviews: list[tuple[Item, MemoryState]] = field(default_factory=list)
    new: list[Item] = field(default_factory=list)
    # Exam claims per studied container, counted over its whole subtree
    exam_claims: dict[str, int] = field(default_factory=dict)


def build_session_queue(
    containers_to_study: list[Container] | tuple[Container, ...],
    forest: list[Container] | tuple[Container, ...],
    global_settings: SrsSettings,
    introduced_today: frozenset[str] | set[str],
    exams: list[Exam] | None = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> SessionQueue:
    """
    Build the ordered queue for one study session.

    Args:
        containers_to_study: Sub-forest selected for study.
        forest: Full forest, for settings inheritance and exam scopes.
        global_settings: Global settings (also the source of the global budgets
            and of the final ordering policies).
        introduced_today: Ids of items already introduced today.
        exams: Upcoming exams whose scopes get new-item priority.
        now: Reference time; defaults to the current UTC time.
        rng: Random source for shuffles; pass a seeded one for determinism.

    Returns:
        SessionQueue ordered as exam-priority new items, then intraday
        learning, then new and review items combined per `new_review_order`.
    """
    session = _Session(
        forest=forest,
        global_settings=global_settings,
        introduced_today=frozenset(introduced_today),
        now=now or datetime.now(timezone.utc),
        rng=rng or random.Random(),
    )

    if not containers_to_study:
        return SessionQueue()

    budgets = _global_budgets(forest, global_settings, session.introduced_today)

    exam_items, attribution = _claim_exam_items(exams or [], containers_to_study, budgets, session)
    session.seen.update(item.id for item in exam_items)

    for root in containers_to_study:
        budget = budgets[root.kind]
        claimed = session.exam_claims.get(root.id, 0)
        used_new, used_review = _gather(root, budget.new + claimed, budget.review, session)
        budget.new = max(0, budget.new + claimed - used_new)
        budget.review = max(0, budget.review - used_review)

    learning = [item for item, _ in sorted(session.learning, key=lambda pair: pair[1].due)]
    reviews = _sort_reviews(session.reviews, global_settings, session)
    new = _sort_new(session.new, global_settings, session.rng)

    order = global_settings.new_review_order
    if order == "after":
        rest = reviews + new
    elif order == "before":
        rest = new + reviews
    else:
        rest = reviews + new
        session.rng.shuffle(rest)

    logger.debug(
        f"Session queue: {len(exam_items)} exam, {len(learning)} learning, "
        f"{len(reviews)} review, {len(new)} new"
    )

    return SessionQueue(
        items=exam_items + learning + rest,
        exam_attribution=attribution,
        new_count=len(exam_items) + len(new),
        review_count=len(reviews),
        learning_count=len(learning),
    )


# ---------------------------------------------------------------------------
# Budgets and exams
# ---------------------------------------------------------------------------


def _global_budgets(
    forest: list[Container] | tuple[Container, ...],
    global_settings: SrsSettings,
    introduced_today: frozenset[str],
) -> dict[str, _Budget]:
    """Global budgets per container kind, minus what was introduced earlier today."""
    introduced: dict[str, int] = {"deck": 0, "bank": 0}
    for item, owner in iter_items_with_container(forest):
        if item.id in introduced_today:
            introduced[owner.kind] += 1

    budgets = {}
    for kind in ("deck", "bank"):
        new_limit, review_limit = global_settings.limits_for(kind)
        budgets[kind] = _Budget(new=max(0, new_limit - introduced[kind]), review=max(0, review_limit))
    return budgets


def _claim_exam_items(
    exams: list[Exam],
    containers_to_study: list[Container] | tuple[Container, ...],
    budgets: dict[str, _Budget],
    session: _Session,
) -> tuple[list[Item], dict[str, Exam]]:
    """
    Claim today's quota of new items for each exam, earliest deadline first.

    A claimed item belongs to that exam alone and is charged to the global
    new budget of its container kind before any container is gathered. It
    also counts against the local new limit of every studied container on
    its path, so no subtree ends up with more new items than its limit.
    """
    studied = {item.id for item, _ in iter_items_with_container(containers_to_study)}
    studied_containers = {node.id for node in iter_containers(containers_to_study)}
    today = session.now.date()
    claimed: list[Item] = []
    attribution: dict[str, Exam] = {}

    for exam in sorted(exams, key=lambda e: e.date):
        scope = exam_scope(exam, session.forest, session.global_settings)

        introduced_in_scope = sum(1 for entry in scope if entry.item.id in session.introduced_today)
        candidates = [
            entry
            for entry in scope
            if entry.item.id not in session.introduced_today
            and get_item_status(entry.item, entry.settings.scheduler) == ItemStatus.NEW
        ]

        quota = daily_new_quota(len(candidates) + introduced_in_scope, days_left(exam, today))
        needed = quota - introduced_in_scope
        if needed <= 0:
            continue

        taken = 0
        for entry in candidates:
            if taken >= needed:
                break
            item = entry.item
            if item.id in attribution or item.id not in studied:
                continue
            budget = budgets[entry.container.kind]
            if budget.new <= 0:
                continue
            path = [
                node
                for node in find_with_ancestors(session.forest, entry.container.id)
                if node.id in studied_containers
            ]
            if any(
                session.exam_claims.get(node.id, 0) >= _local_new_limit(node, session)
                for node in path
            ):
                continue
            budget.new -= 1
            for node in path:
                session.exam_claims[node.id] = session.exam_claims.get(node.id, 0) + 1
            claimed.append(item)
            attribution[item.id] = exam
            taken += 1

        logger.debug(f"Exam {exam.name}: quota {quota}, claimed {taken}")

    return claimed, attribution


def _local_new_limit(container: Container, session: _Session) -> int:
    settings = resolve_settings(session.forest, container.id, session.global_settings)
    return settings.limits_for(container.kind)[0]


# ---------------------------------------------------------------------------
# Hierarchical gather
# ---------------------------------------------------------------------------


def _classify(item: Item, settings: SrsSettings, session: _Session) -> tuple[str, MemoryState | None] | None:
    """Class of an item for this session, or None if it is not studyable now."""
    status = get_item_status(item, settings.scheduler, settings.maturity_threshold_days)
    if status == ItemStatus.SUSPENDED:
        return None
    if status == ItemStatus.NEW:
        if item.id in session.introduced_today:
            return None
        return _NEW, None

    state = item.memory(settings.scheduler)
    if state is None or state.due > session.now:
        return None
    if status in (ItemStatus.LEARNING, ItemStatus.RELEARNING):
        if _step_days(state, settings) < 1:
            return _LEARNING, state
    return _REVIEW, state


def _step_days(state: MemoryState, settings: SrsSettings) -> float:
    """Length in days of the (re)learning step the item is waiting on."""
    if state.last_review is not None:
        return (state.due - state.last_review).total_seconds() / SECONDS_PER_DAY
    if isinstance(state, FsrsState):
        return state.scheduled_days
    relearning = state.state == Sm2Phase.RELEARNING
    steps = parse_steps(settings.relearning_steps if relearning else settings.learning_steps)
    if not steps:
        return 0.0
    return steps[min(state.learning_step, len(steps) - 1)] / MINUTES_PER_DAY


def _gather(container: Container, remaining_new: int, remaining_review: int, session: _Session) -> tuple[int, int]:
    """
    Collect items from a container and its subtree within the given budgets.

    The container's own limits cap what it and its descendants may take;
    children share whatever the container left over. Exam claims inside the
    subtree were taken before the gather and count against its new limit.
    Intraday learning items are always taken and never charged.

    Returns:
        (new items taken, review items taken) across the subtree, exam
        claims included in the new count.
    """
    settings = resolve_settings(session.forest, container.id, session.global_settings)
    local_new, local_review = settings.limits_for(container.kind)
    claimed = session.exam_claims.get(container.id, 0)
    new_budget = max(0, min(remaining_new, local_new))
    review_budget = max(0, min(remaining_review, local_review))

    new_pool: list[Item] = []
    review_pool: list[tuple[Item, MemoryState]] = []
    for item in container.items:
        if item.id in session.seen:
            continue
        classified = _classify(item, settings, session)
        if classified is None:
            continue
        kind, state = classified
        if kind == _LEARNING:
            session.seen.add(item.id)
            session.learning.append((item, state))
        elif kind == _REVIEW:
            review_pool.append((item, state))
        else:
            new_pool.append(item)

    review_pool.sort(key=lambda pair: pair[1].due)
    taken_reviews = review_pool[:review_budget]
    for item, state in taken_reviews:
        session.seen.add(item.id)
        session.reviews.append((item, state))

    taken_new: list[Item] = []
    if settings.new_cards_ignore_review_limit or len(taken_reviews) < review_budget:
        taken_new = _gather_new(new_pool, settings, session.rng)[: max(0, new_budget - claimed)]
        for item in taken_new:
            session.seen.add(item.id)
            session.new.append(item)

    used_new, used_review = len(taken_new) + claimed, len(taken_reviews)
    for child in container.children:
        child_claimed = session.exam_claims.get(child.id, 0)
        child_new = new_budget - used_new + child_claimed
        child_review = review_budget - used_review
        if child_new <= 0 and child_review <= 0 and not settings.new_cards_ignore_review_limit:
            _sweep_learning(child, session)
            continue
        n, r = _gather(child, max(0, child_new), max(0, child_review), session)
        used_new += n - child_claimed
        used_review += r

    return used_new, used_review


def _sweep_learning(container: Container, session: _Session) -> None:
    """Take only the intraday learning items of a subtree whose budgets are spent."""
    for node in iter_containers([container]):
        settings = resolve_settings(session.forest, node.id, session.global_settings)
        for item in node.items:
            if item.id in session.seen:
                continue
            classified = _classify(item, settings, session)
            if classified is not None and classified[0] == _LEARNING:
                session.seen.add(item.id)
                session.learning.append((item, classified[1]))


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def _note_groups(items: list[Item]) -> list[list[Item]]:
    """Group siblings of the same note, keeping first-seen order."""
    groups: dict[str, list[Item]] = {}
    for item in items:
        groups.setdefault(item.note_id or item.id, []).append(item)
    return list(groups.values())


def _gather_new(items: list[Item], settings: SrsSettings, rng: random.Random) -> list[Item]:
    """Order a container's new items before its budget is applied."""
    order = settings.new_card_gather_order
    if order == "ascending":
        return sorted(items, key=lambda i: (i.new_card_order is None, i.new_card_order or 0))
    if order == "descending":
        return sorted(items, key=lambda i: (i.new_card_order is not None, i.new_card_order or 0), reverse=True)
    if order == "randomNotes":
        groups = _note_groups(items)
        rng.shuffle(groups)
        return [item for group in groups for item in group]
    if order == "randomCards":
        shuffled = list(items)
        rng.shuffle(shuffled)
        return shuffled
    return list(items)


def _sort_new(items: list[Item], settings: SrsSettings, rng: random.Random) -> list[Item]:
    """Order the gathered new items for presentation."""
    order = settings.new_card_sort_order
    if order == "typeThenGathered":
        return sorted(items, key=lambda i: i.card_type or "")
    if order == "typeThenRandom":
        by_type: dict[str, list[Item]] = {}
        for item in items:
            by_type.setdefault(item.card_type or "", []).append(item)
        result = []
        for card_type in sorted(by_type):
            group = by_type[card_type]
            rng.shuffle(group)
            result.extend(group)
        return result
    if order == "randomNote":
        groups = _note_groups(items)
        rng.shuffle(groups)
        return [item for group in groups for item in group]
    if order == "random":
        shuffled = list(items)
        rng.shuffle(shuffled)
        return shuffled
    return list(items)


def _interval_days(state: MemoryState) -> float:
    if isinstance(state, FsrsState):
        return max(1.0, state.scheduled_days)
    return float(max(1, state.interval))


def _sort_reviews(
    pairs: list[tuple[Item, MemoryState]],
    settings: SrsSettings,
    session: _Session,
) -> list[Item]:
    """Order review items by due date, due day with random ties, or overdueness."""
    order = settings.review_sort_order
    if order == "dueDateDeck":
        return [item for item, _ in sorted(pairs, key=lambda pair: pair[1].due)]
    if order == "overdue":

        def overdueness(pair: tuple[Item, MemoryState]) -> float:
            late = (session.now - pair[1].due).total_seconds() / SECONDS_PER_DAY
            return late / _interval_days(pair[1])

        return [item for item, _ in sorted(pairs, key=overdueness, reverse=True)]

    by_day: dict = {}
    for item, state in pairs:
        by_day.setdefault(state.due.date(), []).append(item)
    result = []
    for day in sorted(by_day):
        group = by_day[day]
        session.rng.shuffle(group)
        result.extend(group)
    return result
