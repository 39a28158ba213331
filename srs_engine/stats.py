"""
srs_engine.stats
----------------

This module defines the optional CollectionStats class.

It depends on pandas, install it with `pip install "py-srs-engine[stats]"`.
"""

from __future__ import annotations
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import TypedDict
import numpy as np
import pandas as pd
from srs_engine.card import Card, GRADUATED_STEP
from srs_engine.learning import STEP_COUNT
from srs_engine.mastery import MASTERED_REPETITIONS, MasteryLevel
from srs_engine.state import State

MATURE_INTERVAL = 21
HARD_EASE_FACTOR = 2.3

CARD_COLUMNS = [
    "item_id",
    "family",
    "state",
    "step",
    "ease_factor",
    "interval_days",
    "repetitions",
    "lapses",
    "due",
    "last_review",
]


class CollectionSummary(TypedDict):
    total: int
    due: int
    new: int
    learning: int
    review: int
    mature: int


class LearnedSummary(TypedDict):
    all_time: int
    this_month: int
    this_week: int


class CollectionStats:
    """
    Statistics over a collection of cards, such as one user's vocabulary or one imported deck.

    Attributes:
        cards: The cards the statistics are computed over.
        step_count: The number of learning steps cards go through before graduating.
    """

    cards: tuple[Card, ...]
    step_count: int
    _cards_df: pd.DataFrame

    def __init__(self, cards: Iterable[Card], step_count: int = STEP_COUNT) -> None:
        self.cards = tuple(cards)
        self.step_count = step_count

        cards_df = pd.DataFrame(
            [
                {**card.to_dict(), "due": card.due, "last_review": card.last_review}
                for card in self.cards
            ],
            columns=CARD_COLUMNS,
        )
        cards_df["due"] = pd.to_datetime(cards_df["due"], utc=True)
        cards_df["last_review"] = pd.to_datetime(cards_df["last_review"], utc=True)

        self._cards_df = cards_df

    def __len__(self) -> int:
        return len(self.cards)

    def summary(self, as_of: datetime) -> CollectionSummary:
        """
        Counts the cards per state, the cards due at `as_of` and the mature cards.

        Mature cards are Review-state cards with an interval of at least 21 days.
        """

        cards_df = self._cards_df
        state = cards_df["state"]

        return {
            "total": len(cards_df),
            "due": int((cards_df["due"] <= as_of).sum()),
            "new": int((state == State.New).sum()),
            "learning": int(state.isin([int(State.Learning), int(State.Relearning)]).sum()),
            "review": int((state == State.Review).sum()),
            "mature": int(
                (
                    (state == State.Review)
                    & (cards_df["interval_days"] >= MATURE_INTERVAL)
                ).sum()
            ),
        }

    def learned(self, as_of: datetime) -> LearnedSummary:
        """
        Counts the graduated cards, overall and among those last reviewed this
        calendar month or in the 7 days before `as_of`.
        """

        cards_df = self._cards_df
        graduated = cards_df["step"] == GRADUATED_STEP
        last_review = cards_df["last_review"]

        month_start = as_of.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        week_ago = as_of - timedelta(days=7)

        return {
            "all_time": int(graduated.sum()),
            "this_month": int((graduated & (last_review >= month_start)).sum()),
            "this_week": int((graduated & (last_review >= week_ago)).sum()),
        }

    def hard_cards(self, limit: int = 20) -> list[Card]:
        """
        The cards the learner struggles with, hardest (lowest ease factor) first.

        A card is hard when it was reviewed at least once and either its ease factor
        dropped below 2.3 or it is still inside its learning steps.
        """

        cards_df = self._cards_df
        in_learning = (cards_df["step"] >= 0) & (cards_df["step"] < self.step_count)

        hard_df = cards_df.loc[
            cards_df["last_review"].notna()
            & ((cards_df["ease_factor"] < HARD_EASE_FACTOR) | in_learning)
        ]
        hard_df = hard_df.sort_values(by="ease_factor", kind="stable").head(limit)

        return [self.cards[index] for index in hard_df.index]

    def mastery_levels(self) -> dict[str, MasteryLevel]:
        """
        The mastery level of every card, keyed by item id.
        """

        cards_df = self._cards_df
        graduated = cards_df["step"] == GRADUATED_STEP

        levels = np.select(
            [
                graduated & (cards_df["repetitions"] >= MASTERED_REPETITIONS),
                graduated,
                cards_df["last_review"].notna(),
            ],
            [
                MasteryLevel.Mastered.value,
                MasteryLevel.Practicing.value,
                MasteryLevel.Learning.value,
            ],
            default=MasteryLevel.New.value,
        )

        return {
            item_id: MasteryLevel(level)
            for item_id, level in zip(cards_df["item_id"], levels)
        }

    def mastery_counts(self) -> dict[MasteryLevel, int]:
        """
        The number of cards at every mastery level.
        """

        counts = pd.Series(
            [level.value for level in self.mastery_levels().values()], dtype=object
        ).value_counts()

        return {level: int(counts.get(level.value, 0)) for level in MasteryLevel}


__all__ = ["CollectionStats", "CollectionSummary", "LearnedSummary"]
