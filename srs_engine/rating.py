from __future__ import annotations
from enum import IntEnum
from typing import Any
from srs_engine.errors import UnknownRating


class Rating(IntEnum):
    """
    Enum representing the three possible ratings when reviewing a card.
    """

    Again = 1
    Good = 4
    Easy = 5

    @classmethod
    def parse(cls, value: Any) -> Rating:
        """
        Converts a raw grade into a Rating.

        Args:
            value: A Rating or one of the integers 1, 4 or 5.

        Returns:
            Rating: The matching rating.

        Raises:
            UnknownRating: If the value is not part of the grading set.
        """

        if isinstance(value, cls):
            return value

        # bool is an int subclass, True would otherwise parse as Again
        if isinstance(value, bool) or not isinstance(value, int):
            raise UnknownRating(f"Rating must be 1, 4 or 5, got {value!r}")

        try:
            return cls(value)
        except ValueError:
            raise UnknownRating(f"Rating must be 1, 4 or 5, got {value!r}") from None


__all__ = ["Rating"]
