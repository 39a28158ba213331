"""
srs_engine.scheduler
--------------------

This module defines the Scheduler class as well as the default values of its settings.

Classes:
    Scheduler: The spaced-repetition scheduler.
    GradeResult: The outcome of grading one card.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
import json
from typing import Any, TypedDict
from typing_extensions import Self
from loguru import logger
from srs_engine.card import Card, INITIAL_EASE_FACTOR, MINIMUM_EASE_FACTOR
from srs_engine.errors import InvalidState, UnknownRating
from srs_engine.intervals import (
    AGAIN_EASE_PENALTY,
    EASY_BONUS,
    EASY_EASE_BONUS,
    EASY_INTERVAL,
    GRADUATING_INTERVAL,
    MAXIMUM_INTERVAL,
    IntervalModel,
)
from srs_engine.item import ReviewableItem
from srs_engine.learning import DEFAULT_LEARNING_STEPS, LearningSteps, in_learning_phase
from srs_engine.rating import Rating
from srs_engine.review_log import ReviewLog
from srs_engine.session import REQUEUE_OFFSET
from srs_engine.state import State

LEARNING_RATING_OPTIONS = (Rating.Again, Rating.Good, Rating.Easy)
REVIEW_RATING_OPTIONS = (Rating.Again, Rating.Easy)


class SchedulerDict(TypedDict):
    """
    JSON-serializable dictionary representation of a Scheduler object.
    """

    learning_steps: list[int]
    initial_ease_factor: float
    minimum_ease_factor: float
    maximum_ease_factor: float | None
    again_ease_penalty: float
    easy_ease_bonus: float
    easy_bonus: float
    graduating_interval: float
    easy_interval: float
    maximum_interval: int
    requeue_offset: int


@dataclass(frozen=True)
class GradeResult:
    """
    The outcome of grading one card.

    Attributes:
        card: The updated card, to be persisted.
        requeue: Whether the card must reappear later in the current session.
        review_log: The log entry of the review.
    """

    card: Card
    requeue: bool
    review_log: ReviewLog


@dataclass(init=False)
class Scheduler:
    """
    The spaced-repetition scheduler.

    Routes every grade either to the learning steps, for cards that have not graduated
    yet, or to the interval model, for cards in the Review state.

    Attributes:
        learning_steps: Small time intervals that schedule cards in the Learning and Relearning states.
        initial_ease_factor: The ease factor given to new cards.
        minimum_ease_factor: The floor the ease factor can never drop below.
        maximum_ease_factor: The ceiling of the ease factor or None if uncapped.
        again_ease_penalty: How much a lapse lowers the ease factor.
        easy_ease_bonus: How much an Easy rating raises the ease factor.
        easy_bonus: Extra interval multiplier applied on an Easy rating.
        graduating_interval: The interval, in days, given when a card graduates with Good.
        easy_interval: The interval, in days, given when a card graduates with Easy.
        maximum_interval: The maximum number of days a Review-state card can be scheduled into the future.
        requeue_offset: How many positions later a card that must be repeated reappears in a session.
    """

    learning_steps: tuple[timedelta, ...]
    initial_ease_factor: float
    minimum_ease_factor: float
    maximum_ease_factor: float | None
    again_ease_penalty: float
    easy_ease_bonus: float
    easy_bonus: float
    graduating_interval: float
    easy_interval: float
    maximum_interval: int
    requeue_offset: int

    def __init__(
        self,
        learning_steps: tuple[timedelta, ...] | list[timedelta] = DEFAULT_LEARNING_STEPS,
        initial_ease_factor: float = INITIAL_EASE_FACTOR,
        minimum_ease_factor: float = MINIMUM_EASE_FACTOR,
        maximum_ease_factor: float | None = None,
        again_ease_penalty: float = AGAIN_EASE_PENALTY,
        easy_ease_bonus: float = EASY_EASE_BONUS,
        easy_bonus: float = EASY_BONUS,
        graduating_interval: float = GRADUATING_INTERVAL,
        easy_interval: float = EASY_INTERVAL,
        maximum_interval: int = MAXIMUM_INTERVAL,
        requeue_offset: int = REQUEUE_OFFSET,
    ) -> None:
        self.learning_steps = tuple(learning_steps)
        self.initial_ease_factor = initial_ease_factor
        self.minimum_ease_factor = minimum_ease_factor
        self.maximum_ease_factor = maximum_ease_factor
        self.again_ease_penalty = again_ease_penalty
        self.easy_ease_bonus = easy_ease_bonus
        self.easy_bonus = easy_bonus
        self.graduating_interval = graduating_interval
        self.easy_interval = easy_interval
        self.maximum_interval = maximum_interval
        self.requeue_offset = requeue_offset

        self._validate_settings()

        self._interval_model = IntervalModel(
            minimum_ease_factor=self.minimum_ease_factor,
            maximum_ease_factor=self.maximum_ease_factor,
            again_ease_penalty=self.again_ease_penalty,
            easy_ease_bonus=self.easy_ease_bonus,
            easy_bonus=self.easy_bonus,
            graduating_interval=self.graduating_interval,
            easy_interval=self.easy_interval,
            maximum_interval=self.maximum_interval,
        )
        self._learning_steps = LearningSteps(
            learning_steps=self.learning_steps, interval_model=self._interval_model
        )

    def _validate_settings(self) -> None:
        error_messages = []

        if len(self.learning_steps) == 0:
            error_messages.append("learning_steps must contain at least one step")

        for index, learning_step in enumerate(self.learning_steps):
            if learning_step <= timedelta(0):
                error_messages.append(
                    f"learning_steps[{index}] = {learning_step} must be positive"
                )

        if self.minimum_ease_factor < MINIMUM_EASE_FACTOR:
            error_messages.append(
                f"minimum_ease_factor = {self.minimum_ease_factor} is below {MINIMUM_EASE_FACTOR}"
            )

        if self.initial_ease_factor < self.minimum_ease_factor:
            error_messages.append(
                f"initial_ease_factor = {self.initial_ease_factor} is below minimum_ease_factor"
            )

        if (
            self.maximum_ease_factor is not None
            and self.maximum_ease_factor < self.initial_ease_factor
        ):
            error_messages.append(
                f"maximum_ease_factor = {self.maximum_ease_factor} is below initial_ease_factor"
            )

        for name in ("again_ease_penalty", "easy_ease_bonus"):
            if getattr(self, name) < 0:
                error_messages.append(f"{name} = {getattr(self, name)} is negative")

        if self.easy_bonus < 1.0:
            error_messages.append(f"easy_bonus = {self.easy_bonus} is below 1.0")

        for name in ("graduating_interval", "easy_interval"):
            if not 1.0 <= getattr(self, name) <= self.maximum_interval:
                error_messages.append(
                    f"{name} = {getattr(self, name)} is out of bounds: (1, {self.maximum_interval})"
                )

        if self.maximum_interval < 1:
            error_messages.append(
                f"maximum_interval = {self.maximum_interval} must be at least 1"
            )

        if self.requeue_offset < 1:
            error_messages.append(
                f"requeue_offset = {self.requeue_offset} must be at least 1"
            )

        if len(error_messages) > 0:
            raise ValueError(
                "One or more scheduler settings are invalid:\n"
                + "\n".join(error_messages)
            )

    @property
    def step_count(self) -> int:
        return len(self.learning_steps)

    def new_card(self, item: ReviewableItem, created: datetime | None = None) -> Card:
        """
        Creates the fresh card for an item that has no review state yet.

        Args:
            item: The item the card tracks.
            created: When the card was created, it is due immediately.

        Returns:
            Card: A card in the New state carrying the scheduler's initial ease factor.
        """

        card = Card.new(item, created=created)
        card.ease_factor = self.initial_ease_factor
        return card

    def is_learning(self, card: Card) -> bool:
        """
        Whether the card is still inside its learning steps.
        """

        return in_learning_phase(card.step, self.step_count)

    def rating_options(self, card: Card) -> tuple[Rating, ...]:
        """
        The ratings worth offering for a card.

        Cards that have not graduated are graded Again, Good or Easy. Graduated cards
        are graded Again or Easy.
        """

        if card.state != State.Review:
            return LEARNING_RATING_OPTIONS

        return REVIEW_RATING_OPTIONS

    def grade(
        self,
        card: Card,
        rating: Rating | int,
        review_datetime: datetime | None = None,
        review_duration: int | None = None,
    ) -> GradeResult:
        """
        Grades a card with a given rating at a given time.

        The card passed in is left untouched.

        Args:
            card: The card being reviewed.
            rating: The chosen rating for the card, one of 1 (Again), 4 (Good) or 5 (Easy).
            review_datetime: The date and time of the review.
            review_duration: The number of milliseconds it took to review the card or None if unspecified.

        Returns:
            GradeResult: The updated card, whether it must be repeated in the current session and its review log.

        Raises:
            UnknownRating: If the rating is not one of 1, 4 or 5.
            InvalidState: If the card's state and learning step already contradict each other.
            ValueError: If the `review_datetime` argument is not timezone-aware and set to UTC.
        """

        try:
            rating = Rating.parse(rating)
        except UnknownRating:
            logger.warning("Rejected rating {!r} for card {}", rating, card.item_id)
            raise

        if review_datetime is not None and (
            (review_datetime.tzinfo is None) or (review_datetime.tzinfo != timezone.utc)
        ):
            raise ValueError("datetime must be timezone-aware and set to UTC")

        if not card.is_valid():
            logger.error(
                "Card {} is corrupt: state={} step={} ease_factor={}",
                card.item_id,
                card.state.name,
                card.step,
                card.ease_factor,
            )
            raise InvalidState(
                f"Card {card.item_id} is corrupt: state={card.state.name}, "
                f"step={card.step}, ease_factor={card.ease_factor}"
            )

        if review_datetime is None:
            review_datetime = datetime.now(timezone.utc)

        previous_state = card.state

        if card.state == State.Review:
            card = self._interval_model.apply_review_outcome(
                card, rating, review_datetime
            )
            # a lapsed card is relearned within the same session
            requeue = card.state == State.Relearning

        else:
            card, requeue = self._learning_steps.step(card, rating, review_datetime)

        review_log = ReviewLog(
            item_id=card.item_id,
            rating=rating,
            review_datetime=review_datetime,
            review_duration=review_duration,
            state=previous_state,
            requeue=requeue,
        )

        return GradeResult(card=card, requeue=requeue, review_log=review_log)

    def reschedule_card(self, card: Card, review_logs: list[ReviewLog]) -> Card:
        """
        Reschedules/updates the given card with the current scheduler provided that card's review logs.

        If the card was previously scheduled with different settings, you may want to reschedule
        it as if it had always been scheduled with the current ones.

        Args:
            card: The card to be rescheduled/updated.
            review_logs: A list of that card's review logs (order doesn't matter).

        Returns:
            Card: A new card that has been rescheduled/updated with this current scheduler.

        Raises:
            ValueError: If any of the review logs are for a card other than the one specified, this will raise an error.
        """

        for review_log in review_logs:
            if review_log.item_id != card.item_id:
                raise ValueError(
                    f"ReviewLog item_id {review_log.item_id} does not match Card item_id {card.item_id}"
                )

        review_logs = sorted(review_logs, key=lambda log: log.review_datetime)

        rescheduled_card = self.new_card(card.item, created=card.due)

        for review_log in review_logs:
            rescheduled_card = self.grade(
                card=rescheduled_card,
                rating=review_log.rating,
                review_datetime=review_log.review_datetime,
            ).card

        return rescheduled_card

    def to_dict(
        self,
    ) -> SchedulerDict:
        """
        Returns a dictionary representation of the Scheduler object.

        Returns:
            SchedulerDict: A dictionary representation of the Scheduler object.
        """

        return {
            "learning_steps": [
                int(learning_step.total_seconds())
                for learning_step in self.learning_steps
            ],
            "initial_ease_factor": self.initial_ease_factor,
            "minimum_ease_factor": self.minimum_ease_factor,
            "maximum_ease_factor": self.maximum_ease_factor,
            "again_ease_penalty": self.again_ease_penalty,
            "easy_ease_bonus": self.easy_ease_bonus,
            "easy_bonus": self.easy_bonus,
            "graduating_interval": self.graduating_interval,
            "easy_interval": self.easy_interval,
            "maximum_interval": self.maximum_interval,
            "requeue_offset": self.requeue_offset,
        }

    @classmethod
    def from_dict(cls, source_dict: SchedulerDict | dict[str, Any]) -> Self:
        """
        Creates a Scheduler object from an existing dictionary.

        Settings missing from the dictionary fall back to their defaults.

        Args:
            source_dict: A dictionary representing an existing Scheduler object.

        Returns:
            Self: A Scheduler object created from the provided dictionary.
        """

        settings = dict(source_dict)

        if "learning_steps" in settings:
            settings["learning_steps"] = [
                timedelta(seconds=learning_step)
                for learning_step in settings["learning_steps"]
            ]

        return cls(**settings)

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the Scheduler object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the Scheduler object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        """
        Creates a Scheduler object from a JSON-serialized string.

        Args:
            source_json: A JSON-serialized string of an existing Scheduler object.

        Returns:
            Self: A Scheduler object created from the JSON string.
        """

        source_dict: SchedulerDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


__all__ = ["Scheduler", "GradeResult"]
