"""
srs_engine.mastery
------------------

How far along a learner is with an item, derived from its card.
"""

from __future__ import annotations
from enum import Enum
from srs_engine.card import Card

MASTERED_REPETITIONS = 5


class MasteryLevel(str, Enum):
    New = "new"
    Learning = "learning"
    Practicing = "practicing"
    Mastered = "mastered"


def mastery_level(card: Card) -> MasteryLevel:
    """
    Graduated cards are practicing, or mastered after enough successful reviews in a row.
    Cards still inside their steps are learning once they have been reviewed at least once.
    """

    if card.is_graduated and card.repetitions >= MASTERED_REPETITIONS:
        return MasteryLevel.Mastered

    if card.is_graduated:
        return MasteryLevel.Practicing

    if card.last_review is not None:
        return MasteryLevel.Learning

    return MasteryLevel.New


__all__ = ["MasteryLevel", "mastery_level", "MASTERED_REPETITIONS"]
