"""
srs_engine.reviewer
-------------------

This module defines the Reviewer class, which ties the scheduler to the card store
and to study sessions.

Classes:
    Reviewer: Loads, grades and persists cards on behalf of a user.
"""

from __future__ import annotations
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
import threading
from loguru import logger
from srs_engine.card import Card
from srs_engine.item import ItemFamily, ReviewableItem
from srs_engine.rating import Rating
from srs_engine.scheduler import GradeResult, Scheduler
from srs_engine.session import StudySession
from srs_engine.store import CardStateStore, DueItemSupplier


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _CardLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class Reviewer:
    """
    Loads, grades and persists cards on behalf of a user.

    The load, grade and save of one card happen under a lock held for that
    (user, item) pair only, reviews of different cards never wait on each other.

    Attributes:
        scheduler: The scheduler that decides every transition.
        store: Where cards are loaded from and saved to.
        supplier: Where study sessions get their due cards from.
        clock: Returns the current, timezone-aware UTC date and time.
    """

    scheduler: Scheduler
    store: CardStateStore
    supplier: DueItemSupplier | None
    clock: Callable[[], datetime]

    def __init__(
        self,
        store: CardStateStore,
        scheduler: Scheduler | None = None,
        supplier: DueItemSupplier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.scheduler = scheduler if scheduler is not None else Scheduler()

        if supplier is None and isinstance(store, DueItemSupplier):
            supplier = store
        self.supplier = supplier

        self.clock = clock

        self._locks: dict[tuple[str, str], _CardLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _card_lock(self, user_id: str, item_id: str) -> Iterator[None]:
        # an entry lives only while some thread holds or waits on it
        key = (user_id, item_id)

        with self._locks_guard:
            card_lock = self._locks.get(key)
            if card_lock is None:
                card_lock = self._locks[key] = _CardLock()
            card_lock.holders += 1

        try:
            with card_lock.lock:
                yield
        finally:
            with self._locks_guard:
                card_lock.holders -= 1
                if card_lock.holders == 0:
                    del self._locks[key]

    def load_card(self, user_id: str, item: ReviewableItem) -> Card:
        """
        Loads the card of an item, or creates a fresh New one if the item was never reviewed.

        The fresh card is not saved until it is graded.
        """

        card = self.store.load(user_id, item.item_id)

        if card is None:
            logger.debug("No card yet for item {} of user {}", item.item_id, user_id)
            card = self.scheduler.new_card(item, created=self.clock())

        return card

    def review(
        self,
        user_id: str,
        item: ReviewableItem,
        rating: Rating | int,
        review_duration: int | None = None,
    ) -> GradeResult:
        """
        Grades an item for a user and persists the updated card.

        Args:
            user_id: The user reviewing the item.
            item: The item being reviewed.
            rating: The chosen rating, one of 1 (Again), 4 (Good) or 5 (Easy).
            review_duration: The number of milliseconds the review took or None if unspecified.

        Returns:
            GradeResult: The updated card, whether it must be repeated in the current session and its review log.

        Raises:
            UnknownRating: If the rating is not one of 1, 4 or 5. Nothing is saved.
            InvalidState: If the stored card is corrupt. Nothing is saved.
        """

        with self._card_lock(user_id, item.item_id):
            card = self.load_card(user_id, item)

            result = self.scheduler.grade(
                card,
                rating,
                review_datetime=self.clock(),
                review_duration=review_duration,
            )

            self.store.save(user_id, item.item_id, result.card)

        logger.info(
            "User {} graded {} {}: {} -> {}",
            user_id,
            item.item_id,
            result.review_log.rating.name,
            result.review_log.state.name,
            result.card.state.name,
        )

        return result

    def start_session(
        self,
        user_id: str,
        family: ItemFamily,
        as_of: datetime | None = None,
        limit: int | None = None,
    ) -> StudySession:
        """
        Builds a study session from the cards of a user that are due.

        Args:
            user_id: The user studying.
            family: The kind of items to study.
            as_of: The date and time the cards must be due by, now if unspecified.
            limit: The maximum number of due cards to start the session with.

        Returns:
            StudySession: A session whose feed follows the supplier's ordering.
        """

        if self.supplier is None:
            raise ValueError("Reviewer has no due-item supplier to start a session from")

        if as_of is None:
            as_of = self.clock()

        due_cards = self.supplier.list_due(user_id, family, as_of)

        if limit is not None:
            due_cards = due_cards[:limit]

        logger.info(
            "Starting {} session for user {} with {} due cards",
            family.value,
            user_id,
            len(due_cards),
        )

        return StudySession(due_cards, offset=self.scheduler.requeue_offset)

    def review_current(
        self,
        user_id: str,
        session: StudySession,
        rating: Rating | int,
        review_duration: int | None = None,
    ) -> GradeResult:
        """
        Grades the card at the session's read position, persists it and advances the session.

        Raises:
            ValueError: If the session is already complete.
        """

        with session.lock:
            card = session.current

            if card is None:
                raise ValueError("Study session is already complete")

            position = session.position
            result = self.review(user_id, card.item, rating, review_duration)
            session.on_graded(position, result.card, result.requeue)

        return result


__all__ = ["Reviewer", "utc_now"]
