"""
Ports (interfaces) for card storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import date
from typing import Any

from .models import Card, NewCard

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]

# Fields a review is allowed to write
SCHEDULING_FIELDS = frozenset({"interval", "ease_factor", "next_review_date", "last_review_date"})


class CardStore(ABC):
    """
    Port for durable card storage.

    Implementations:
        - LocalCardStore: A JSON file on the local disk.
        - FirestoreCardStore: The hosted Firestore REST API.
    """

    def __init__(self):
        self._listeners: list[ChangeListener] = []

    @abstractmethod
    async def create(self, new_card: NewCard, today: date) -> str:
        """
        Store a new card with initial scheduling state.

        Args:
            new_card: Validated question/answer payload.
            today: The creation day; the card is due immediately.

        Returns:
            The id assigned by the store.
        """
        pass

    @abstractmethod
    async def read_all(self) -> list[Card]:
        """Return a snapshot of every stored card."""
        pass

    @abstractmethod
    async def update(self, card_id: str, fields: Mapping[str, Any]) -> None:
        """
        Apply a partial update of scheduling fields.

        Raises:
            NotFound: The card no longer exists.
            PersistenceError: The store failed.
        """
        pass

    @abstractmethod
    async def delete(self, card_id: str) -> None:
        """
        Remove a card.

        Raises:
            NotFound: The card no longer exists.
            PersistenceError: The store failed.
        """
        pass

    async def aclose(self) -> None:
        """Release any held resources."""
        return None

    def subscribe(self, on_change: ChangeListener) -> Callable[[], None]:
        """
        Register a callback fired after each successful mutation made through
        this store. Returns a function that removes the callback.
        """
        self._listeners.append(on_change)

        def unsubscribe() -> None:
            if on_change in self._listeners:
                self._listeners.remove(on_change)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.warning(f"Change listener {listener!r} failed: {e}")
