"""
FSRS-4.5 and FSRS-6 memory-state updates.

Pure functions: (stability, difficulty, rating, elapsed days, parameters)
-> (stability, difficulty, interval). No clock, no I/O.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from prepigo.domain.constants import (
    FSRS6_WEIGHT_COUNT,
    FSRS45_WEIGHT_COUNT,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    MIN_STABILITY,
)
from prepigo.domain.errors import ConfigError
from prepigo.domain.models import Rating
from prepigo.domain.settings import FsrsParameters

FsrsVariant = Literal["fsrs", "fsrs6"]

# FSRS-4.5 forgetting-curve decay; FSRS-6 learns it as w[20]
FSRS45_DECAY = 0.5


@dataclass(frozen=True)
class MemoryUpdate:
    stability: float
    difficulty: float
    interval: int  # days


def validate_weights(w: Sequence[float], variant: FsrsVariant) -> None:
    """
    Fail fast on weight vectors the formulas would index past.

    Raises:
        ConfigError: FSRS-4.5 with fewer than 17 weights, or FSRS-6 without exactly 21.
    """
    if variant == "fsrs6":
        if len(w) != FSRS6_WEIGHT_COUNT:
            raise ConfigError(f"FSRS-6 needs exactly {FSRS6_WEIGHT_COUNT} weights, got {len(w)}")
    elif variant == "fsrs":
        if len(w) < FSRS45_WEIGHT_COUNT:
            raise ConfigError(
                f"FSRS-4.5 needs at least {FSRS45_WEIGHT_COUNT} weights, got {len(w)}"
            )
    else:
        raise ConfigError(f"Unknown FSRS variant: {variant}")


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def next_interval(stability: float, params: FsrsParameters) -> int:
    """Days until the next review for a given stability, at least 1."""
    raw = round_half_up(stability * (1 / params.request_retention - 1))
    return int(_clamp(raw, 1, params.maximum_interval))


def next_memory(
    stability: float | None,
    difficulty: float | None,
    rating: Rating | int,
    elapsed_days: float,
    params: FsrsParameters,
    variant: FsrsVariant = "fsrs",
) -> MemoryUpdate:
    """
    Compute the memory state after one review.

    A missing (or zero) stability/difficulty means the card has never been
    reviewed and gets its initial state. Same-day reviews (elapsed < 1 day)
    only get special handling under FSRS-6.

    Args:
        stability: Current stability, or None for a new card.
        difficulty: Current difficulty, or None for a new card.
        rating: 1=Again, 2=Hard, 3=Good, 4=Easy.
        elapsed_days: Days since the previous review.
        params: Retention target, interval cap and weights.
        variant: 'fsrs' (FSRS-4.5) or 'fsrs6'.

    Returns:
        MemoryUpdate with clamped stability/difficulty and interval in days.
    """
    w = params.w
    validate_weights(w, variant)
    g = int(rating)
    if g not in (1, 2, 3, 4):
        raise ValueError(f"Rating must be 1-4, got {rating}")
    elapsed_days = max(0.0, elapsed_days)

    if not stability or not difficulty:
        s = w[g - 1]
        d = _clamp(w[4] - (g - 3) * w[5], MIN_DIFFICULTY, MAX_DIFFICULTY)
    elif variant == "fsrs6" and elapsed_days < 1:
        s = stability * math.exp(w[17] * (g - 3 + w[18])) * math.pow(stability, -w[19])
        d = difficulty
    else:
        s = stability
        r = 1 / (1 + elapsed_days / (9 * s))
        d = _clamp(difficulty - w[6] * (g - 3), MIN_DIFFICULTY, MAX_DIFFICULTY)

        if g == Rating.AGAIN:
            s = w[15] * math.pow(d, -w[16])
        elif g == Rating.HARD:
            s = s * (
                1 + math.exp(w[11]) * (11 - d) * math.pow(s, -w[12]) * (math.exp((1 - r) * w[13]) - 1)
            )
        else:
            s = s * (
                1 + math.exp(w[8]) * (11 - d) * math.pow(s, -w[9]) * (math.exp((1 - r) * w[10]) - 1)
            )
            if g == Rating.EASY:
                s *= w[14]

    s = _clamp(s, MIN_STABILITY, params.maximum_interval)
    d = _clamp(d, MIN_DIFFICULTY, MAX_DIFFICULTY)
    return MemoryUpdate(stability=s, difficulty=d, interval=next_interval(s, params))


def retrievability(elapsed_days: float, stability: float, w: Sequence[float]) -> float:
    """
    Probability of recall after `elapsed_days`, on the power-law forgetting curve.

    R(t, S) = (1 + factor * t / S) ^ -decay, factor = 0.9 ^ (-1 / decay) - 1.
    Weight vectors without w[20] (FSRS-4.5) use the fixed decay of 0.5.
    Used for forecasts only; scheduling does not gate on it.
    """
    if stability <= 0:
        return 0.0
    decay = w[20] if len(w) > 20 else FSRS45_DECAY
    factor = math.pow(0.9, -1 / decay) - 1
    return math.pow(1 + factor * max(0.0, elapsed_days) / stability, -decay)
