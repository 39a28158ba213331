"""
srs_engine.store
----------------

This module defines the storage contracts the engine relies on, together with an
in-memory implementation of them.

Classes:
    CardStateStore: Loads and saves the card of a (user, item) pair.
    DueItemSupplier: Lists the cards of a user that are due for review.
    InMemoryCardStateStore: A thread-safe, process-local implementation of both.
"""

from __future__ import annotations
from copy import copy
from datetime import datetime
import threading
from typing import Protocol, runtime_checkable
from loguru import logger
from srs_engine.card import Card
from srs_engine.item import ItemFamily


@runtime_checkable
class CardStateStore(Protocol):
    """
    Loads and saves the card of a (user, item) pair.

    Each call must be transactional on its own.
    """

    def load(self, user_id: str, item_id: str) -> Card | None: ...

    def save(self, user_id: str, item_id: str, card: Card) -> None: ...


@runtime_checkable
class DueItemSupplier(Protocol):
    """
    Lists the cards of a user that are due for review.

    The order of the returned cards becomes the order of the study session's feed.
    """

    def list_due(
        self, user_id: str, family: ItemFamily, as_of: datetime
    ) -> list[Card]: ...


class InMemoryCardStateStore:
    """
    A thread-safe, process-local card store.

    Cards are copied on the way in and on the way out, so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._cards: dict[tuple[str, str], Card] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cards)

    def load(self, user_id: str, item_id: str) -> Card | None:
        with self._lock:
            card = self._cards.get((user_id, item_id))
            return copy(card) if card is not None else None

    def save(self, user_id: str, item_id: str, card: Card) -> None:
        if card.item_id != item_id:
            raise ValueError(
                f"Card item_id {card.item_id} does not match item_id {item_id}"
            )

        with self._lock:
            self._cards[(user_id, item_id)] = copy(card)

        logger.debug("Saved card {} for user {}", item_id, user_id)

    def delete(self, user_id: str, item_id: str) -> None:
        with self._lock:
            self._cards.pop((user_id, item_id), None)

    def list_cards(self, user_id: str, family: ItemFamily | None = None) -> list[Card]:
        """
        Every card of a user, optionally restricted to one item family.
        """

        with self._lock:
            return [
                copy(card)
                for (owner, _), card in self._cards.items()
                if owner == user_id and (family is None or card.family == family)
            ]

    def list_due(
        self, user_id: str, family: ItemFamily, as_of: datetime
    ) -> list[Card]:
        """
        The cards of a user due at `as_of`, earliest due first.
        """

        cards = [card for card in self.list_cards(user_id, family) if card.due <= as_of]
        return sorted(cards, key=lambda card: (card.due, card.item_id))


__all__ = ["CardStateStore", "DueItemSupplier", "InMemoryCardStateStore"]
