"""
srs_engine
----------

A spaced-repetition scheduling engine for vocabulary, grammar concepts and imported
flashcards: short in-session learning steps, SM-2 style review intervals and the
ordering of cards within a study session.
"""

from srs_engine.scheduler import Scheduler, GradeResult
from srs_engine.state import State
from srs_engine.card import Card
from srs_engine.item import ItemFamily, ReviewableItem
from srs_engine.rating import Rating
from srs_engine.review_log import ReviewLog
from srs_engine.learning import in_learning_phase
from srs_engine.mastery import MasteryLevel, mastery_level
from srs_engine.session import StudySession
from srs_engine.store import CardStateStore, DueItemSupplier, InMemoryCardStateStore
from srs_engine.reviewer import Reviewer
from srs_engine.errors import (
    SchedulingError,
    InvalidState,
    UnknownRating,
    SessionPositionError,
)
from typing import TYPE_CHECKING
from loguru import logger

if TYPE_CHECKING:
    from srs_engine.stats import CollectionStats

# applications opt in with logger.enable("srs_engine")
logger.disable("srs_engine")


# lazy load the stats module due to heavy dependencies
def __getattr__(name: str) -> type:
    if name == "CollectionStats":
        global CollectionStats
        from srs_engine.stats import CollectionStats

        return CollectionStats
    raise AttributeError(f"module 'srs_engine' has no attribute {name!r}")


__all__ = [
    "Scheduler",
    "GradeResult",
    "Card",
    "ItemFamily",
    "ReviewableItem",
    "Rating",
    "ReviewLog",
    "State",
    "in_learning_phase",
    "MasteryLevel",
    "mastery_level",
    "StudySession",
    "CardStateStore",
    "DueItemSupplier",
    "InMemoryCardStateStore",
    "Reviewer",
    "SchedulingError",
    "InvalidState",
    "UnknownRating",
    "SessionPositionError",
    "CollectionStats",
]
