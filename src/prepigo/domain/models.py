"""
Domain models for the scheduling core.

These are pure data structures with no I/O or external dependencies.
Every update produces a new instance; nothing here is mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Literal, Union

if TYPE_CHECKING:
    from prepigo.domain.settings import SrsSettings

SchedulerName = Literal["fsrs", "fsrs6", "sm2"]
ItemKind = Literal["flashcard", "mcq"]
ContainerKind = Literal["deck", "bank"]


class Rating(IntEnum):
    """Button pressed after a review."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class State(IntEnum):
    """FSRS card state."""

    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class Sm2Phase(str, Enum):
    """SM-2 card state."""

    NEW = "new"
    LEARNING = "learning"
    RELEARNING = "relearning"
    REVIEW = "review"


class ItemStatus(str, Enum):
    """Coarse status used for counting, filtering and display."""

    NEW = "New"
    LEARNING = "Learning"
    RELEARNING = "Relearning"
    YOUNG = "Young"
    MATURE = "Mature"
    SUSPENDED = "Suspended"


@dataclass(frozen=True)
class FsrsState:
    """
    FSRS memory state, shared by the FSRS-4.5 and FSRS-6 slots.

    Attributes:
        due: When the item is next due.
        stability: Days until recall probability drops to the target retention.
        difficulty: Item difficulty on the 1-10 scale.
        elapsed_days: Days between the two most recent reviews.
        scheduled_days: Wait assigned by the most recent review (fractional for steps).
        learning_steps: Steps completed within the current (re)learning phase.
    """

    due: datetime
    stability: float = 0.0
    difficulty: float = 0.0
    elapsed_days: float = 0.0
    scheduled_days: float = 0.0
    reps: int = 0
    lapses: int = 0
    state: State = State.NEW
    last_review: datetime | None = None
    learning_steps: int = 0


@dataclass(frozen=True)
class Sm2State:
    """
    SM-2 memory state. Also the shape produced by the Anki importer.

    Attributes:
        easiness_factor: Ease multiplier, never below 1.3.
        interval: Review interval in whole days.
        learning_step: Steps completed within the current (re)learning phase.
    """

    due: datetime
    easiness_factor: float = 2.5
    interval: int = 1
    repetitions: int = 0
    lapses: int = 0
    state: Sm2Phase = Sm2Phase.NEW
    learning_step: int = 0
    last_review: datetime | None = None


MemoryState = Union[FsrsState, Sm2State]


@dataclass(frozen=True)
class SrsSlots:
    """One memory-state slot per scheduler family."""

    fsrs: FsrsState | None = None
    fsrs6: FsrsState | None = None
    sm2: Sm2State | None = None

    def slot_for(self, scheduler: SchedulerName) -> MemoryState | None:
        if scheduler == "fsrs":
            return self.fsrs
        if scheduler == "fsrs6":
            return self.fsrs6
        if scheduler == "sm2":
            return self.sm2
        raise ValueError(f"Unknown scheduler: {scheduler}")


@dataclass(frozen=True)
class Item:
    """A flashcard or an MCQ."""

    id: str
    kind: ItemKind = "flashcard"
    tags: frozenset[str] = frozenset()
    is_suspended: bool = False
    new_card_order: int | None = None
    note_id: str | None = None  # Sibling group (cloze / occlusion cards of one note)
    card_type: str | None = None  # basic, cloze, imageOcclusion, mcq
    srs: SrsSlots = field(default_factory=SrsSlots)

    def memory(self, scheduler: SchedulerName) -> MemoryState | None:
        return self.srs.slot_for(scheduler)


@dataclass(frozen=True)
class Container:
    """A deck (flashcards) or a question bank (MCQs). Children form a tree."""

    id: str
    name: str
    kind: ContainerKind = "deck"
    items: tuple[Item, ...] = ()
    children: tuple[Container, ...] = ()
    has_custom_settings: bool = False
    settings: SrsSettings | None = None


@dataclass(frozen=True)
class Exam:
    """
    An upcoming exam that reprioritizes which new items are introduced.

    Scope is the union of the listed containers' subtrees, narrowed by tags
    (any/all) and an optional FSRS difficulty range.
    """

    id: str
    name: str
    date: date
    container_ids: tuple[str, ...] = ()
    tags: frozenset[str] = frozenset()
    tag_filter: Literal["any", "all"] = "all"
    difficulty_min: float | None = None
    difficulty_max: float | None = None


@dataclass(frozen=True)
class ReviewLog:
    """
    A single review log entry handed to the storage collaborator.

    Attributes:
        state: State before the review.
        due: Due timestamp before the review.
        elapsed_days: Elapsed days recorded on the state before the review.
        last_elapsed_days: Days since the previous review, measured now.
        scheduled_days: Wait assigned by this review.
    """

    item_id: str
    rating: Rating
    scheduler: SchedulerName
    state: str
    due: datetime
    stability: float | None
    difficulty: float | None
    elapsed_days: float
    last_elapsed_days: float
    scheduled_days: float
    review: datetime
    duration_ms: int | None = None


@dataclass(frozen=True)
class ReviewResult:
    """Outcome of reviewing one item: the updated copy plus its log row."""

    item: Item
    log: ReviewLog


@dataclass
class DueCounts:
    new_count: int = 0
    learn_count: int = 0
    due_count: int = 0

    def __add__(self, other: DueCounts) -> DueCounts:
        return DueCounts(
            new_count=self.new_count + other.new_count,
            learn_count=self.learn_count + other.learn_count,
            due_count=self.due_count + other.due_count,
        )

    @property
    def total(self) -> int:
        return self.new_count + self.learn_count + self.due_count


@dataclass
class SessionQueue:
    """Result of building a study session."""

    items: list[Item] = field(default_factory=list)
    exam_attribution: dict[str, Exam] = field(default_factory=dict)
    new_count: int = 0  # Includes exam-priority items
    review_count: int = 0
    learning_count: int = 0

    def __len__(self) -> int:
        return len(self.items)

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]
