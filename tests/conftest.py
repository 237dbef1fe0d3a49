from datetime import datetime, timedelta, timezone

import pytest

from prepigo.domain.models import FsrsState, Item, Sm2Phase, Sm2State, SrsSlots, State

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    for var in ("PREPIGO_COLLECTION_PATH", "PREPIGO_SEED", "PREPIGO_VERBOSE"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def new_item():
    """Factory for never-reviewed items."""

    def make(item_id: str, **kwargs) -> Item:
        return Item(id=item_id, **kwargs)

    return make


@pytest.fixture
def fsrs_item():
    """Factory for items with an FSRS slot (due one day ago, in Review, by default)."""

    def make(
        item_id: str,
        due: datetime = NOW - timedelta(days=1),
        state: State = State.REVIEW,
        stability: float = 10.0,
        difficulty: float = 5.0,
        last_review: datetime | None = None,
        scheduled_days: float = 10.0,
        slot: str = "fsrs",
        **kwargs,
    ) -> Item:
        memory = FsrsState(
            due=due,
            stability=stability,
            difficulty=difficulty,
            scheduled_days=scheduled_days,
            reps=3,
            state=state,
            last_review=last_review,
        )
        return Item(id=item_id, srs=SrsSlots(**{slot: memory}), **kwargs)

    return make


@pytest.fixture
def sm2_item():
    """Factory for items with an SM-2 slot (due one day ago, in review, by default)."""

    def make(
        item_id: str,
        due: datetime = NOW - timedelta(days=1),
        state: Sm2Phase = Sm2Phase.REVIEW,
        interval: int = 6,
        repetitions: int = 2,
        easiness_factor: float = 2.5,
        learning_step: int = 0,
        **kwargs,
    ) -> Item:
        memory = Sm2State(
            due=due,
            easiness_factor=easiness_factor,
            interval=interval,
            repetitions=repetitions,
            state=state,
            learning_step=learning_step,
        )
        return Item(id=item_id, srs=SrsSlots(sm2=memory), **kwargs)

    return make


SAMPLE_COLLECTION = """\
settings:
  newCardsPerDay: 2
  maxReviewsPerDay: 50
  newReviewOrder: before
  newCardSortOrder: gathered
decks:
  - id: bio
    name: Biology
    items:
      - id: b1
        tags: [cell]
      - id: b2
      - id: b3
        srs:
          fsrs:
            due: "2020-01-01T00:00:00+00:00"
            stability: 30.0
            difficulty: 5.0
            scheduled_days: 31
            reps: 4
            state: review
            last_review: "2019-12-01T00:00:00+00:00"
    children:
      - id: bio-cell
        name: Cells
        has_custom_settings: true
        settings:
          scheduler: sm2
        items:
          - id: c1
          - id: c2
            is_suspended: true
banks:
  - id: qb
    name: Questions
    items:
      - id: q1
exams:
  - id: final
    name: Final
    date: 2099-06-01
    container_ids: [bio]
"""


@pytest.fixture
def collection_file(tmp_path):
    """A small collection: one deck tree, one question bank and one exam."""
    path = tmp_path / "collection.yaml"
    path.write_text(SAMPLE_COLLECTION, encoding="utf-8")
    return path
