"""
Scheduling settings.

`SrsSettings` is the global configuration and also the shape of a per-deck
override. Keys are accepted in snake_case or in the camelCase used by the
settings persistence collaborator.
"""

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from prepigo.domain.constants import (
    DEFAULT_FSRS6_WEIGHTS,
    DEFAULT_FSRS45_WEIGHTS,
    DEFAULT_MATURITY_THRESHOLD_DAYS,
    DEFAULT_MAXIMUM_INTERVAL,
    DEFAULT_NEW_PER_DAY,
    DEFAULT_REQUEST_RETENTION,
    DEFAULT_REVIEWS_PER_DAY,
    FSRS6_WEIGHT_COUNT,
    FSRS45_WEIGHT_COUNT,
    MCQ_MAXIMUM_INTERVAL,
    MCQ_REQUEST_RETENTION,
    SM2_MIN_EASE,
    SM2_STARTING_EASE,
)
from prepigo.domain.errors import ConfigError

STEPS_PATTERN = re.compile(r"^\s*(\d+(\.\d+)?[smhd]?\s+)*\d+(\.\d+)?[smhd]?\s*$")

NewCardGatherOrder = Literal["deck", "ascending", "descending", "randomNotes", "randomCards"]
NewCardSortOrder = Literal["gathered", "typeThenGathered", "typeThenRandom", "randomNote", "random"]
NewReviewOrder = Literal["mix", "after", "before"]
ReviewSortOrder = Literal["dueDateRandom", "dueDateDeck", "overdue"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class FsrsParameters(_CamelModel):
    """Retention target, interval cap and weight vector for one FSRS variant."""

    request_retention: float = Field(default=DEFAULT_REQUEST_RETENTION, ge=0.7, le=0.99)
    maximum_interval: int = Field(default=DEFAULT_MAXIMUM_INTERVAL, ge=1)
    w: tuple[float, ...] = DEFAULT_FSRS45_WEIGHTS


def _fsrs45_defaults(retention: float, max_interval: int) -> FsrsParameters:
    return FsrsParameters(
        request_retention=retention, maximum_interval=max_interval, w=DEFAULT_FSRS45_WEIGHTS
    )


def _fsrs6_defaults(retention: float, max_interval: int) -> FsrsParameters:
    return FsrsParameters(
        request_retention=retention, maximum_interval=max_interval, w=DEFAULT_FSRS6_WEIGHTS
    )


class SrsSettings(_CamelModel):
    """
    Global (or per-container override) scheduling configuration.

    Invalid values passed to the constructor raise pydantic's ValidationError;
    loaders go through `parse_settings`, which reports ConfigError instead.
    """

    scheduler: Literal["fsrs", "fsrs6", "sm2"] = "fsrs"

    # FSRS parameter sets, one per item kind
    fsrs_parameters: FsrsParameters = Field(
        default_factory=lambda: _fsrs45_defaults(DEFAULT_REQUEST_RETENTION, DEFAULT_MAXIMUM_INTERVAL)
    )
    mcq_fsrs_parameters: FsrsParameters = Field(
        default_factory=lambda: _fsrs45_defaults(MCQ_REQUEST_RETENTION, MCQ_MAXIMUM_INTERVAL)
    )
    fsrs6_parameters: FsrsParameters = Field(
        default_factory=lambda: _fsrs6_defaults(DEFAULT_REQUEST_RETENTION, DEFAULT_MAXIMUM_INTERVAL)
    )
    mcq_fsrs6_parameters: FsrsParameters = Field(
        default_factory=lambda: _fsrs6_defaults(MCQ_REQUEST_RETENTION, MCQ_MAXIMUM_INTERVAL)
    )

    maturity_threshold_days: int = Field(default=DEFAULT_MATURITY_THRESHOLD_DAYS, ge=1)

    # SM-2 tunables
    sm2_starting_ease: float = Field(default=SM2_STARTING_EASE, ge=SM2_MIN_EASE)
    sm2_min_easiness_factor: float = Field(default=SM2_MIN_EASE, ge=SM2_MIN_EASE)
    sm2_easy_bonus: float = Field(default=1.3, ge=1.0)
    sm2_interval_modifier: float = Field(default=1.0, ge=0.1)
    sm2_hard_interval_multiplier: float = Field(default=1.2, ge=1.0)
    sm2_lapsed_interval_multiplier: float = Field(default=0.6, ge=0.0, le=1.0)
    sm2_maximum_interval: int = Field(default=365, ge=1)
    sm2_graduating_interval: int = Field(default=1, ge=1)
    sm2_easy_interval: int = Field(default=4, ge=1)
    sm2_minimum_interval: int = Field(default=1, ge=1)

    # Steps, in minutes unless suffixed
    learning_steps: str = "1 10"
    relearning_steps: str = "10"

    # Daily budgets. Zero means none today, only negative values are rejected.
    new_cards_per_day: int = Field(default=DEFAULT_NEW_PER_DAY, ge=0)
    max_reviews_per_day: int = Field(default=DEFAULT_REVIEWS_PER_DAY, ge=0)
    mcq_new_cards_per_day: int = Field(default=DEFAULT_NEW_PER_DAY, ge=0)
    mcq_max_reviews_per_day: int = Field(default=DEFAULT_REVIEWS_PER_DAY, ge=0)

    # Ordering policies
    new_card_gather_order: NewCardGatherOrder = "deck"
    new_card_sort_order: NewCardSortOrder = "typeThenGathered"
    new_review_order: NewReviewOrder = "mix"
    review_sort_order: ReviewSortOrder = "dueDateRandom"
    new_cards_ignore_review_limit: bool = False

    @field_validator("fsrs_parameters", "mcq_fsrs_parameters")
    @classmethod
    def check_fsrs45_weights(cls, v: FsrsParameters) -> FsrsParameters:
        if len(v.w) < FSRS45_WEIGHT_COUNT:
            raise ValueError(
                f"FSRS-4.5 needs at least {FSRS45_WEIGHT_COUNT} weights, got {len(v.w)}"
            )
        return v

    @field_validator("fsrs6_parameters", "mcq_fsrs6_parameters")
    @classmethod
    def check_fsrs6_weights(cls, v: FsrsParameters) -> FsrsParameters:
        if len(v.w) != FSRS6_WEIGHT_COUNT:
            raise ValueError(f"FSRS-6 needs exactly {FSRS6_WEIGHT_COUNT} weights, got {len(v.w)}")
        return v

    @field_validator("learning_steps", "relearning_steps")
    @classmethod
    def check_steps(cls, v: str) -> str:
        if v.strip() and not STEPS_PATTERN.match(v):
            raise ValueError(
                "Must be space-separated numbers with optional s, m, h, d units."
            )
        return v

    def fsrs_params_for(self, kind: str, variant: str) -> FsrsParameters:
        """Parameter set for an item kind ('flashcard' or 'mcq') and FSRS variant."""
        if variant == "fsrs6":
            return self.mcq_fsrs6_parameters if kind == "mcq" else self.fsrs6_parameters
        return self.mcq_fsrs_parameters if kind == "mcq" else self.fsrs_parameters

    def limits_for(self, container_kind: str) -> tuple[int, int]:
        """(new per day, reviews per day) for a deck or a question bank."""
        if container_kind == "bank":
            return self.mcq_new_cards_per_day, self.mcq_max_reviews_per_day
        return self.new_cards_per_day, self.max_reviews_per_day


def parse_settings(data: dict[str, Any] | None) -> SrsSettings:
    """
    Validate a settings mapping.

    Raises:
        ConfigError: If any option is malformed (bad scheduler, weight vector
            of the wrong length, negative budget, unparseable steps, ...).
    """
    try:
        return SrsSettings.model_validate(data or {})
    except ValidationError as e:
        issues = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid settings: {issues}") from e
