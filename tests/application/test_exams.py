"""Tests for exam scope, quotas, progress and study plans."""

from datetime import date, timedelta

import pytest

from prepigo.application.exams import (
    daily_new_quota,
    days_left,
    exam_progress,
    exam_scope,
    plan_exam_schedule,
)
from prepigo.domain.models import Container, Exam, State
from prepigo.domain.settings import SrsSettings

TODAY = date(2026, 3, 10)


@pytest.fixture
def forest(new_item, fsrs_item):
    cells = Container(
        id="cells",
        name="Cells",
        items=(
            new_item("c1", tags=frozenset({"bio", "cell"})),
            fsrs_item("c2", tags=frozenset({"bio"}), difficulty=3.0),
            fsrs_item("c3", tags=frozenset({"cell"}), difficulty=8.0),
        ),
    )
    bio = Container(id="bio", name="Biology", items=(new_item("b1", tags=frozenset({"bio"})),), children=(cells,))
    chem = Container(id="chem", name="Chemistry", items=(new_item("h1"),))
    return [bio, chem]


def ids(scope):
    return [entry.item.id for entry in scope]


class TestExamScope:
    def test_union_of_subtrees_in_encounter_order(self, forest):
        exam = Exam(id="e", name="E", date=TODAY, container_ids=("chem", "bio"))
        assert ids(exam_scope(exam, forest, SrsSettings())) == ["h1", "b1", "c1", "c2", "c3"]

    def test_overlapping_containers_deduplicated(self, forest):
        exam = Exam(id="e", name="E", date=TODAY, container_ids=("bio", "cells"))
        assert ids(exam_scope(exam, forest, SrsSettings())) == ["b1", "c1", "c2", "c3"]

    def test_unknown_container_ignored(self, forest):
        exam = Exam(id="e", name="E", date=TODAY, container_ids=("nope", "chem"))
        assert ids(exam_scope(exam, forest, SrsSettings())) == ["h1"]

    def test_tags_all(self, forest):
        exam = Exam(
            id="e", name="E", date=TODAY, container_ids=("bio",), tags=frozenset({"bio", "cell"})
        )
        assert ids(exam_scope(exam, forest, SrsSettings())) == ["c1"]

    def test_tags_any(self, forest):
        exam = Exam(
            id="e",
            name="E",
            date=TODAY,
            container_ids=("bio",),
            tags=frozenset({"cell"}),
            tag_filter="any",
        )
        assert ids(exam_scope(exam, forest, SrsSettings())) == ["c1", "c3"]

    def test_difficulty_range_skips_unreviewed(self, forest):
        exam = Exam(id="e", name="E", date=TODAY, container_ids=("bio",), difficulty_min=5.0)
        assert ids(exam_scope(exam, forest, SrsSettings())) == ["c3"]

        exam = Exam(id="e", name="E", date=TODAY, container_ids=("bio",), difficulty_max=5.0)
        assert ids(exam_scope(exam, forest, SrsSettings())) == ["c2"]

    def test_scope_carries_effective_settings(self, forest):
        exam = Exam(id="e", name="E", date=TODAY, container_ids=("chem",))
        settings = SrsSettings(scheduler="sm2")

        (entry,) = exam_scope(exam, forest, settings)

        assert entry.settings is settings
        assert entry.container.id == "chem"


class TestQuota:
    def test_days_left(self):
        exam = Exam(id="e", name="E", date=TODAY + timedelta(days=2))
        assert days_left(exam, TODAY) == 2
        assert days_left(exam, TODAY + timedelta(days=5)) == -3

    @pytest.mark.parametrize(
        "pool,remaining,expected",
        [(10, 2, 5), (7, 2, 4), (10, 30, 1), (10, 0, 10), (10, -3, 10), (0, 5, 0)],
    )
    def test_daily_new_quota(self, pool, remaining, expected):
        assert daily_new_quota(pool, remaining) == expected


class TestProgress:
    def test_mastered_means_due_after_exam(self, fsrs_item, new_item, now):
        exam_day = now.date() + timedelta(days=10)
        deck = Container(
            id="d",
            name="D",
            items=(
                fsrs_item("safe", due=now + timedelta(days=20)),
                fsrs_item("on_day", due=now + timedelta(days=10)),
                fsrs_item("soon", due=now + timedelta(days=1)),
                new_item("fresh"),
            ),
        )
        exam = Exam(id="e", name="E", date=exam_day, container_ids=("d",))

        progress = exam_progress(exam, [deck], SrsSettings())

        assert (progress.mastered, progress.total, progress.percentage) == (1, 4, 25)

    def test_empty_scope_is_complete(self):
        exam = Exam(id="e", name="E", date=TODAY, container_ids=("missing",))
        progress = exam_progress(exam, [], SrsSettings())
        assert (progress.mastered, progress.total, progress.percentage) == (0, 0, 100)


class TestSchedule:
    def test_even_distribution(self):
        plan = plan_exam_schedule(["a", "b", "c", "d", "e"], TODAY + timedelta(days=2), TODAY)

        assert [day.day for day in plan] == [TODAY + timedelta(days=i) for i in range(3)]
        assert [day.item_ids for day in plan] == [("a", "b"), ("c", "d"), ("e",)]

    def test_exam_today_gets_everything(self):
        plan = plan_exam_schedule(["a", "b"], TODAY, TODAY)
        assert [day.item_ids for day in plan] == [("a", "b")]

    def test_past_exam_or_no_items(self):
        assert plan_exam_schedule(["a"], TODAY - timedelta(days=1), TODAY) == []
        assert plan_exam_schedule([], TODAY + timedelta(days=3), TODAY) == []


def test_difficulty_filter_uses_fsrs6_slot(fsrs_item):
    deck = Container(
        id="d",
        name="D",
        items=(fsrs_item("x", slot="fsrs6", difficulty=6.0, state=State.REVIEW),),
        has_custom_settings=True,
        settings=SrsSettings(scheduler="fsrs6"),
    )
    exam = Exam(id="e", name="E", date=TODAY, container_ids=("d",), difficulty_min=5.0, difficulty_max=7.0)

    assert ids(exam_scope(exam, [deck], SrsSettings())) == ["x"]
