# Scheduling Package
from .fsrs import MemoryUpdate, next_interval, next_memory, retrievability, validate_weights
from .reviewer import review_item
from .sm2 import Sm2Update, rating_to_quality, sm2_update
from .steps import parse_steps

__all__ = [
    "MemoryUpdate",
    "next_interval",
    "next_memory",
    "retrievability",
    "validate_weights",
    "review_item",
    "Sm2Update",
    "rating_to_quality",
    "sm2_update",
    "parse_steps",
]
