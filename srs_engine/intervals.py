"""
srs_engine.intervals
--------------------

This module defines the IntervalModel class, which grows the ease factor and day
interval of cards that have graduated into the Review state.

Classes:
    IntervalModel: SM-2 style interval growth for Review-state cards.
"""

from __future__ import annotations
from copy import copy
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from loguru import logger
from srs_engine.card import Card, MINIMUM_EASE_FACTOR
from srs_engine.errors import InvalidState
from srs_engine.rating import Rating
from srs_engine.state import State

AGAIN_EASE_PENALTY = 0.2
EASY_EASE_BONUS = 0.15
EASY_BONUS = 1.3
GRADUATING_INTERVAL = 1.0
EASY_INTERVAL = 4.0
LAPSE_INTERVAL = 1.0
MAXIMUM_INTERVAL = 36500


@dataclass(frozen=True)
class IntervalModel:
    """
    SM-2 style interval growth for cards in the Review state.

    Attributes:
        minimum_ease_factor: The floor the ease factor can never drop below.
        maximum_ease_factor: The ceiling of the ease factor or None if uncapped.
        again_ease_penalty: How much a lapse lowers the ease factor.
        easy_ease_bonus: How much an Easy rating raises the ease factor.
        easy_bonus: Extra interval multiplier applied on an Easy rating.
        graduating_interval: The interval, in days, given on a first graduation with Good.
        easy_interval: The interval, in days, given on a first graduation with Easy.
        maximum_interval: The maximum number of days a card can be scheduled into the future.
    """

    minimum_ease_factor: float = MINIMUM_EASE_FACTOR
    maximum_ease_factor: float | None = None
    again_ease_penalty: float = AGAIN_EASE_PENALTY
    easy_ease_bonus: float = EASY_EASE_BONUS
    easy_bonus: float = EASY_BONUS
    graduating_interval: float = GRADUATING_INTERVAL
    easy_interval: float = EASY_INTERVAL
    maximum_interval: int = MAXIMUM_INTERVAL

    def apply_review_outcome(
        self,
        card: Card,
        rating: Rating,
        review_datetime: datetime,
        graduating: bool = False,
    ) -> Card:
        """
        Applies a rating to a card in the Review state.

        Again sends the card into Relearning at step 0. Good and Easy keep the card in
        Review and grow its interval. A card that is graduating out of its learning steps
        gets a fixed first interval instead of a multiple of its previous one.

        Args:
            card: The card being reviewed, in the Review state.
            rating: The rating given to the card.
            review_datetime: The date and time of the review.
            graduating: Whether the card just left its learning or relearning steps.

        Returns:
            Card: A copy of the card with its updated scheduling fields.

        Raises:
            InvalidState: If the card is not in the Review state.
        """

        if card.state != State.Review:
            raise InvalidState(
                f"Card {card.item_id} is in the {card.state.name} state, expected Review"
            )

        card = copy(card)
        previous_interval = card.interval_days

        match rating:
            case Rating.Again:
                card.repetitions = 0
                card.lapses += 1
                card.ease_factor = max(
                    self.minimum_ease_factor, card.ease_factor - self.again_ease_penalty
                )
                card.interval_days = LAPSE_INTERVAL
                card.state = State.Relearning
                card.step = 0

                logger.debug(
                    "Card {} lapsed ({} lapses), ease factor now {:.2f}",
                    card.item_id,
                    card.lapses,
                    card.ease_factor,
                )

            case Rating.Good:
                card.repetitions += 1

                if graduating:
                    next_interval = self.graduating_interval
                else:
                    next_interval = max(1.0, card.interval_days * card.ease_factor)

                card.interval_days = self._clamp_interval(
                    previous_interval=previous_interval, next_interval=next_interval
                )

            case Rating.Easy:
                card.repetitions += 1

                if graduating:
                    next_interval = self.easy_interval
                else:
                    next_interval = max(
                        1.0, card.interval_days * card.ease_factor * self.easy_bonus
                    )

                card.interval_days = self._clamp_interval(
                    previous_interval=previous_interval, next_interval=next_interval
                )
                card.ease_factor = self._clamp_ease_factor(
                    ease_factor=card.ease_factor + self.easy_ease_bonus
                )

        card.due = review_datetime + timedelta(days=self.due_in_days(card.interval_days))
        card.last_review = review_datetime

        return card

    def due_in_days(self, interval_days: float) -> int:
        """
        Converts a fractional interval into the whole number of days until the card is due.
        """

        # intervals are full days, halves round up
        return min(max(math.floor(interval_days + 0.5), 1), self.maximum_interval)

    def _clamp_interval(self, *, previous_interval: float, next_interval: float) -> float:
        # capped at the maximum interval, but never below the previous interval
        return min(next_interval, max(float(self.maximum_interval), previous_interval))

    def _clamp_ease_factor(self, *, ease_factor: float) -> float:
        ease_factor = max(ease_factor, self.minimum_ease_factor)

        if self.maximum_ease_factor is not None:
            ease_factor = min(ease_factor, self.maximum_ease_factor)

        return ease_factor


__all__ = ["IntervalModel"]
