"""SM-2 update rule."""

from dataclasses import dataclass

from prepigo.domain.constants import SM2_MIN_EASE
from prepigo.domain.models import Rating

from .fsrs import round_half_up

RATING_TO_QUALITY = {
    Rating.AGAIN: 1,
    Rating.HARD: 3,
    Rating.GOOD: 4,
    Rating.EASY: 5,
}


@dataclass(frozen=True)
class Sm2Update:
    repetitions: int
    ease_factor: float
    interval: int


def rating_to_quality(rating: Rating | int) -> int:
    """Map a four-button rating onto the 0-5 SM-2 quality scale."""
    return RATING_TO_QUALITY[Rating(rating)]


def sm2_update(
    repetitions: int,
    ease_factor: float,
    interval: int,
    quality: int,
    min_ease: float = SM2_MIN_EASE,
) -> Sm2Update:
    """
    Classic SM-2.

    Quality >= 3 grows the interval (1, then 6, then interval * ease);
    anything lower resets repetitions and the interval to 1. The ease
    factor is adjusted on every review and never drops below `min_ease`
    (itself never below 1.3).
    """
    if not 0 <= quality <= 5:
        raise ValueError(f"Quality must be 0-5, got {quality}")

    if quality >= 3:
        if repetitions == 0:
            interval = 1
        elif repetitions == 1:
            interval = 6
        else:
            interval = max(1, round_half_up(interval * ease_factor))
        repetitions += 1
    else:
        repetitions = 0
        interval = 1

    floor = max(min_ease, SM2_MIN_EASE)
    ease_factor += 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
    ease_factor = max(floor, ease_factor)

    return Sm2Update(repetitions=repetitions, ease_factor=ease_factor, interval=interval)
