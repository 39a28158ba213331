"""
srs_engine.session
------------------

This module defines the StudySession class, which orders the cards shown during
one continuous study session and decides when a missed card reappears.

Classes:
    SessionQueueEntry: A card paired with the feed position it was queued for.
    StudySession: The ephemeral feed of one study session.
"""

from __future__ import annotations
from collections.abc import Iterable
from dataclasses import dataclass
import threading
from loguru import logger
from srs_engine.card import Card
from srs_engine.errors import SessionPositionError

REQUEUE_OFFSET = 3


@dataclass
class SessionQueueEntry:
    """
    A card paired with the feed position it was queued for.

    Attributes:
        card: The card's state when it was queued.
        target_position: The feed position the card was aimed at.
    """

    card: Card
    target_position: int


class StudySession:
    """
    The ephemeral feed of one study session.

    The feed starts out in the order the caller supplies. A card that must be repeated
    is reinserted `offset` positions after the one it was graded at, or held back until
    the feed runs out when that position lies past its end. The same item may appear more
    than once, every occurrence presents the item's most recently graded state.

    Attributes:
        offset: How many positions after the current one a requeued card reappears.
    """

    offset: int

    def __init__(self, cards: Iterable[Card] = (), offset: int = REQUEUE_OFFSET) -> None:
        if offset < 1:
            raise ValueError(f"offset must be at least 1, got {offset}")

        self.offset = offset

        self._feed: list[SessionQueueEntry] = []
        self._pending: list[SessionQueueEntry] = []
        self._latest: dict[str, Card] = {}
        self._position = 0
        self._lock = threading.RLock()

        self.enqueue(cards)

    def __repr__(self) -> str:
        return (
            f"StudySession(position={self._position}, feed={len(self._feed)}, "
            f"pending={len(self._pending)})"
        )

    def __len__(self) -> int:
        return len(self._feed) + len(self._pending)

    @property
    def lock(self) -> threading.RLock:
        """
        Held while a grade is applied to the session.
        """

        return self._lock

    @property
    def position(self) -> int:
        return self._position

    @property
    def current(self) -> Card | None:
        """
        The card to show at the read position or None once the session is complete.
        """

        with self._lock:
            self._refill()

            if self._position >= len(self._feed):
                return None

            return self._present(self._feed[self._position])

    @property
    def remaining(self) -> list[Card]:
        """
        The cards still to be shown, in order, including those held back until the feed runs out.
        """

        with self._lock:
            upcoming = self._feed[self._position :] + self._pending
            return [self._present(entry) for entry in upcoming]

    @property
    def is_complete(self) -> bool:
        with self._lock:
            return self._position >= len(self._feed) and not self._pending

    def enqueue(self, cards: Iterable[Card]) -> None:
        """
        Appends due cards to the end of the feed, keeping the order they were given in.
        """

        with self._lock:
            for card in cards:
                self._latest[card.item_id] = card
                self._feed.append(
                    SessionQueueEntry(card=card, target_position=len(self._feed))
                )

    def on_graded(self, position: int, card: Card, requeue: bool) -> Card | None:
        """
        Records the grade of the card at the read position and advances the session.

        Args:
            position: The read position the graded card was shown at.
            card: The card's state after grading.
            requeue: Whether the card must reappear later in this session.

        Returns:
            Card | None: The next card to show, or None once the session is complete.

        Raises:
            SessionPositionError: If the position is not the session's read position.
        """

        with self._lock:
            if position != self._position or position >= len(self._feed):
                logger.warning(
                    "Grade reported for position {} but the session is at {}",
                    position,
                    self._position,
                )
                raise SessionPositionError(
                    f"Session is at position {self._position}, got a grade for {position}"
                )

            self._latest[card.item_id] = card

            if requeue:
                target_position = position + self.offset
                entry = SessionQueueEntry(card=card, target_position=target_position)

                if target_position < len(self._feed):
                    self._feed.insert(target_position, entry)
                else:
                    self._pending.append(entry)

                logger.debug(
                    "Card {} requeued for position {}", card.item_id, target_position
                )

            self._position += 1
            self._refill()

            if self._position >= len(self._feed):
                return None

            return self._present(self._feed[self._position])

    def abandon(self) -> None:
        """
        Discards the feed. Grades already persisted are not affected.
        """

        with self._lock:
            logger.debug(
                "Session abandoned at position {} with {} cards left",
                self._position,
                len(self._feed) - self._position + len(self._pending),
            )

            self._feed.clear()
            self._pending.clear()
            self._latest.clear()
            self._position = 0

    def _refill(self) -> None:
        # the feed ran out while cards are still waiting to be repeated
        if self._position >= len(self._feed) and self._pending:
            self._feed.extend(self._pending)
            self._pending.clear()

    def _present(self, entry: SessionQueueEntry) -> Card:
        return self._latest.get(entry.card.item_id, entry.card)


__all__ = ["StudySession", "SessionQueueEntry", "REQUEUE_OFFSET"]
