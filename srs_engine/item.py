"""
srs_engine.item
---------------

This module defines the ReviewableItem and ItemFamily classes.

Classes:
    ItemFamily: Enum of the kinds of content that can be reviewed.
    ReviewableItem: An opaque reference to a piece of reviewable content.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import TypedDict
from typing_extensions import Self


class ItemFamily(str, Enum):
    """
    Enum of the kinds of content that can be reviewed.
    """

    Vocabulary = "vocabulary"
    GrammarConcept = "grammar_concept"
    ImportedCard = "imported_card"


class ReviewableItemDict(TypedDict):
    """
    JSON-serializable dictionary representation of a ReviewableItem object.
    """

    item_id: str
    family: str


@dataclass(frozen=True)
class ReviewableItem:
    """
    An opaque reference to a piece of reviewable content.

    The engine never looks at the content itself, only at the identifier and family.

    Attributes:
        item_id: The id of the item.
        family: The kind of content the item refers to.
    """

    item_id: str
    family: ItemFamily

    def to_dict(self) -> ReviewableItemDict:
        return {"item_id": self.item_id, "family": self.family.value}

    @classmethod
    def from_dict(cls, source_dict: ReviewableItemDict) -> Self:
        return cls(
            item_id=str(source_dict["item_id"]),
            family=ItemFamily(source_dict["family"]),
        )


__all__ = ["ItemFamily", "ReviewableItem"]
