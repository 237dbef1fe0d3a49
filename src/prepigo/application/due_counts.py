"""
Due-count aggregation per container subtree.
"""

from datetime import datetime

from prepigo.domain.models import Container, DueCounts, ItemStatus
from prepigo.domain.settings import SrsSettings

from .settings_resolver import resolve_settings
from .status import get_item_status


def get_due_counts(
    container: Container,
    forest: list[Container] | tuple[Container, ...],
    global_settings: SrsSettings,
    now: datetime,
) -> DueCounts:
    """
    Count New, due Learning/Relearning and due Review items in a subtree.

    Each container is classified with its own effective settings, so a child
    with a different scheduler reads its own memory slot. Suspended items are
    skipped; New items are counted whatever their due date.

    Args:
        container: Root of the subtree to count.
        forest: Full forest, needed to resolve inherited settings.
        global_settings: Fallback settings.
        now: Reference time for "due".
    """
    settings = resolve_settings(forest, container.id, global_settings)
    counts = DueCounts()

    for item in container.items:
        status = get_item_status(item, settings.scheduler, settings.maturity_threshold_days)
        if status == ItemStatus.SUSPENDED:
            continue
        if status == ItemStatus.NEW:
            counts.new_count += 1
            continue

        state = item.memory(settings.scheduler)
        if state is None or state.due > now:
            continue
        if status in (ItemStatus.LEARNING, ItemStatus.RELEARNING):
            counts.learn_count += 1
        else:
            counts.due_count += 1

    for child in container.children:
        counts = counts + get_due_counts(child, forest, global_settings, now)

    return counts
