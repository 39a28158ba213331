"""
srs_engine.learning
-------------------

This module defines the LearningSteps class, the short-term state machine a card
passes through before it graduates into the Review state.

Classes:
    LearningSteps: Intra-session learning and relearning steps.

Functions:
    in_learning_phase: Whether a learning step falls inside the learning steps.
"""

from __future__ import annotations
from copy import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from loguru import logger
from srs_engine.card import Card, GRADUATED_STEP
from srs_engine.errors import InvalidState
from srs_engine.intervals import IntervalModel
from srs_engine.rating import Rating
from srs_engine.state import State

# 12 hours, 3 days
DEFAULT_LEARNING_STEPS = (timedelta(hours=12), timedelta(days=3))
STEP_COUNT = len(DEFAULT_LEARNING_STEPS)

SECONDS_PER_DAY = 86400


def in_learning_phase(step: int, step_count: int = STEP_COUNT) -> bool:
    """
    Whether a card with the given learning step is still inside its learning steps.

    Cards in the learning phase are repeated within the session and are graded with
    Again, Good or Easy. Graduated cards only ever see Again or Easy.
    """

    return 0 <= step < step_count


@dataclass(frozen=True)
class LearningSteps:
    """
    Intra-session learning and relearning steps.

    Attributes:
        learning_steps: Small time intervals that schedule cards in the Learning and Relearning states.
        interval_model: The model that takes over once a card graduates.
    """

    learning_steps: tuple[timedelta, ...] = DEFAULT_LEARNING_STEPS
    interval_model: IntervalModel = field(default_factory=IntervalModel)

    def __post_init__(self) -> None:
        if len(self.learning_steps) == 0:
            raise ValueError("At least one learning step is required.")

    @property
    def step_count(self) -> int:
        return len(self.learning_steps)

    def step(
        self, card: Card, rating: Rating, review_datetime: datetime
    ) -> tuple[Card, bool]:
        """
        Applies a rating to a card that has not graduated yet.

        Args:
            card: The card being reviewed, in the New, Learning or Relearning state.
            rating: The rating given to the card.
            review_datetime: The date and time of the review.

        Returns:
            tuple[Card,bool]: The updated card and whether it must reappear later in the same session.

        Raises:
            InvalidState: If the card is in the Review state.
        """

        if card.state == State.Review or card.step < 0:
            raise InvalidState(
                f"Card {card.item_id} has already graduated (state={card.state.name}, step={card.step})"
            )

        card = copy(card)

        if card.state == State.New:
            card.state = State.Learning

        match rating:
            case Rating.Again:
                card.step = 0
                requeue = True

            case Rating.Good:
                # a step past the end comes from a scheduler with more learning_steps
                if card.step + 1 >= self.step_count:
                    return self._graduate(card, rating, review_datetime), False

                card.step += 1
                requeue = True

            case Rating.Easy:
                return self._graduate(card, rating, review_datetime), False

        next_interval = self.learning_steps[card.step]
        card.interval_days = next_interval.total_seconds() / SECONDS_PER_DAY
        card.due = review_datetime + next_interval
        card.last_review = review_datetime

        logger.debug(
            "Card {} at {} step {}", card.item_id, card.state.name, card.step
        )

        return card, requeue

    def _graduate(self, card: Card, rating: Rating, review_datetime: datetime) -> Card:
        card.state = State.Review
        card.step = GRADUATED_STEP

        card = self.interval_model.apply_review_outcome(
            card, rating, review_datetime, graduating=True
        )

        logger.debug(
            "Card {} graduated with {}, next review in {} days",
            card.item_id,
            rating.name,
            card.interval_days,
        )

        return card


__all__ = ["LearningSteps", "in_learning_phase", "DEFAULT_LEARNING_STEPS", "STEP_COUNT"]
