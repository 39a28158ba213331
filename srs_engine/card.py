"""
srs_engine.card
---------------

This module defines the Card class.

Classes:
    Card: The review state of one item for one user.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
import json
from typing import TypedDict
from typing_extensions import Self
from srs_engine.item import ItemFamily, ReviewableItem
from srs_engine.state import State

GRADUATED_STEP = -1
INITIAL_EASE_FACTOR = 2.5
MINIMUM_EASE_FACTOR = 1.3


class CardDict(TypedDict):
    """
    JSON-serializable dictionary representation of a Card object.
    """

    item_id: str
    family: str
    state: int
    step: int
    ease_factor: float
    interval_days: float
    repetitions: int
    lapses: int
    due: str
    last_review: str | None


@dataclass(init=False)
class Card:
    """
    The review state of one item for one user.

    Attributes:
        item_id: The id of the item being reviewed.
        family: The kind of content the item refers to.
        state: The card's current learning state.
        step: The card's current learning or relearning step, or -1 once the card is in the Review state.
        ease_factor: Multiplier applied to the current interval to produce the next one.
        interval_days: The number of days between the last review and the next one.
        repetitions: The number of successful Review-phase passes since the last lapse.
        lapses: The number of times the card fell from Review back into Relearning.
        due: The date and time when the card is due next.
        last_review: The date and time of the card's last review.
    """

    item_id: str
    family: ItemFamily
    state: State
    step: int
    ease_factor: float
    interval_days: float
    repetitions: int
    lapses: int
    due: datetime
    last_review: datetime | None

    def __init__(
        self,
        item_id: str,
        family: ItemFamily = ItemFamily.Vocabulary,
        state: State = State.New,
        step: int | None = None,
        ease_factor: float = INITIAL_EASE_FACTOR,
        interval_days: float = 0.0,
        repetitions: int = 0,
        lapses: int = 0,
        due: datetime | None = None,
        last_review: datetime | None = None,
    ) -> None:
        self.item_id = item_id
        self.family = family
        self.state = state

        if step is None:
            step = GRADUATED_STEP if state == State.Review else 0
        self.step = step

        self.ease_factor = ease_factor
        self.interval_days = interval_days
        self.repetitions = repetitions
        self.lapses = lapses

        if due is None:
            due = datetime.now(timezone.utc)
        self.due = due

        self.last_review = last_review

    @classmethod
    def new(cls, item: ReviewableItem, created: datetime | None = None) -> Self:
        """
        Creates the fresh card for an item that has never been reviewed.

        Args:
            item: The item the card tracks.
            created: When the card was created, it is due immediately.

        Returns:
            A Card in the New state.
        """

        return cls(item_id=item.item_id, family=item.family, due=created)

    @property
    def item(self) -> ReviewableItem:
        return ReviewableItem(item_id=self.item_id, family=self.family)

    @property
    def is_graduated(self) -> bool:
        return self.step == GRADUATED_STEP

    def is_valid(self) -> bool:
        """
        Whether the card satisfies the engine's invariants.

        A card is in the Review state exactly when its step is -1. New cards sit at
        step 0, and the ease factor never sits below its floor.
        """

        if (self.state == State.Review) != (self.step == GRADUATED_STEP):
            return False

        if self.state != State.Review and self.step < 0:
            return False

        if self.state == State.New and self.step != 0:
            return False

        return self.ease_factor >= MINIMUM_EASE_FACTOR

    def to_dict(self) -> CardDict:
        """
        Returns a JSON-serializable dictionary representation of the Card object.

        This method is specifically useful for storing Card objects in a database.

        Returns:
            A dictionary representation of the Card object.
        """

        return {
            "item_id": self.item_id,
            "family": self.family.value,
            "state": self.state.value,
            "step": self.step,
            "ease_factor": self.ease_factor,
            "interval_days": self.interval_days,
            "repetitions": self.repetitions,
            "lapses": self.lapses,
            "due": self.due.isoformat(),
            "last_review": self.last_review.isoformat() if self.last_review else None,
        }

    @classmethod
    def from_dict(cls, source_dict: CardDict) -> Self:
        """
        Creates a Card object from an existing dictionary.

        Args:
            source_dict: A dictionary representing an existing Card object.

        Returns:
            A Card object created from the provided dictionary.
        """

        return cls(
            item_id=str(source_dict["item_id"]),
            family=ItemFamily(source_dict["family"]),
            state=State(int(source_dict["state"])),
            step=int(source_dict["step"]),
            ease_factor=float(source_dict["ease_factor"]),
            interval_days=float(source_dict["interval_days"]),
            repetitions=int(source_dict["repetitions"]),
            lapses=int(source_dict["lapses"]),
            due=datetime.fromisoformat(source_dict["due"]),
            last_review=(
                datetime.fromisoformat(source_dict["last_review"])
                if source_dict["last_review"]
                else None
            ),
        )

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the Card object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the Card object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        """
        Creates a Card object from a JSON-serialized string.

        Args:
            source_json: A JSON-serialized string of an existing Card object.

        Returns:
            Self: A Card object created from the JSON string.
        """

        source_dict: CardDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


__all__ = ["Card", "GRADUATED_STEP", "INITIAL_EASE_FACTOR", "MINIMUM_EASE_FACTOR"]
