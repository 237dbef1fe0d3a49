from datetime import timedelta

from prepigo.application.due_counts import get_due_counts
from prepigo.domain.models import Container, DueCounts, Sm2Phase, State
from prepigo.domain.settings import SrsSettings


def test_counts_items_and_children(new_item, fsrs_item, sm2_item, now):
    child = Container(
        id="child",
        name="Child",
        items=(
            sm2_item("s1"),  # due review
            sm2_item("s2", state=Sm2Phase.LEARNING, due=now - timedelta(minutes=5)),
            fsrs_item("s3"),  # no SM-2 slot: new under this child's scheduler
        ),
        has_custom_settings=True,
        settings=SrsSettings(scheduler="sm2"),
    )
    root = Container(
        id="root",
        name="Root",
        items=(
            new_item("n1"),
            new_item("n2", is_suspended=True),
            fsrs_item("r1"),
            fsrs_item("r2", due=now + timedelta(days=2)),
            fsrs_item("l1", state=State.LEARNING, due=now - timedelta(minutes=1)),
            fsrs_item("l2", state=State.RELEARNING, due=now + timedelta(minutes=5)),
            fsrs_item("x1", state=State.REVIEW, is_suspended=True),
        ),
        children=(child,),
    )
    forest = [root]

    assert get_due_counts(child, forest, SrsSettings(), now) == DueCounts(1, 1, 1)
    assert get_due_counts(root, forest, SrsSettings(), now) == DueCounts(2, 2, 2)


def test_empty_container(now):
    counts = get_due_counts(Container(id="a", name="A"), [], SrsSettings(), now)
    assert counts.total == 0


def test_new_counted_regardless_of_due(fsrs_item, now):
    item = fsrs_item("n", state=State.NEW, due=now + timedelta(days=30))
    root = Container(id="a", name="A", items=(item,))

    assert get_due_counts(root, [root], SrsSettings(), now).new_count == 1
