# Domain Package
from .errors import ConfigError, ContainerNotFound, StateError
from .models import (
    Container,
    DueCounts,
    Exam,
    FsrsState,
    Item,
    ItemStatus,
    Rating,
    ReviewLog,
    ReviewResult,
    SessionQueue,
    Sm2Phase,
    Sm2State,
    SrsSlots,
    State,
)
from .settings import FsrsParameters, SrsSettings, parse_settings

__all__ = [
    "ConfigError",
    "ContainerNotFound",
    "StateError",
    "Container",
    "DueCounts",
    "Exam",
    "FsrsState",
    "Item",
    "ItemStatus",
    "Rating",
    "ReviewLog",
    "ReviewResult",
    "SessionQueue",
    "Sm2Phase",
    "Sm2State",
    "SrsSlots",
    "State",
    "FsrsParameters",
    "SrsSettings",
    "parse_settings",
]
