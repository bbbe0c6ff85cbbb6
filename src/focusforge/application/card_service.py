"""
Card Service — Application layer orchestrator.

Coordinates card creation, listing and deletion through the store, and builds
the due queue and review sessions for "today" in the configured zone.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime

from focusforge.application.queue_builder import DueSummary, build_due_queue, summarize_due
from focusforge.application.review_session import ReviewSession
from focusforge.application.utils.deck_file import DeckEntry
from focusforge.domain.cards.calendar import today_in, utc_now
from focusforge.domain.cards.models import Card, NewCard
from focusforge.domain.cards.ports import CardStore
from focusforge.domain.constants import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)


class CardService:
    """
    Application service for managing and reviewing cards.

    Depends on the CardStore abstraction, not concrete adapter implementations.
    """

    def __init__(
        self,
        store: CardStore,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            store: The repository (port) for cards.
            timezone: Calendar zone that decides which day it is.
            clock: Returns the current instant; injectable for tests.
        """
        self._store = store
        self._timezone = timezone
        self._clock = clock

    @property
    def store(self) -> CardStore:
        return self._store

    def today(self) -> date:
        return today_in(self._timezone, self._clock())

    async def add_card(self, question: str, answer: str) -> str:
        """
        Validate and store a new card, due today.

        Raises:
            InvalidInput: Question or answer is empty. The store is not called.
        """
        payload = NewCard(question=question.strip(), answer=answer.strip())
        card_id = await self._store.create(payload, self.today())
        logger.info(f"Added card {card_id}")
        return card_id

    async def import_cards(self, entries: Iterable[DeckEntry]) -> list[str]:
        """
        Store every deck entry as a new card.

        All entries are validated before the first store call, so a bad entry
        never leaves a half-imported deck.
        """
        payloads = [NewCard(question=e.question.strip(), answer=e.answer.strip()) for e in entries]
        today = self.today()

        card_ids = []
        for payload in payloads:
            card_ids.append(await self._store.create(payload, today))
        logger.info(f"Imported {len(card_ids)} cards")
        return card_ids

    async def list_cards(self) -> list[Card]:
        """All cards, soonest due first."""
        cards = await self._store.read_all()
        return sorted(cards, key=lambda c: (c.next_review_date, c.id))

    async def delete_card(self, card_id: str) -> None:
        await self._store.delete(card_id)
        logger.info(f"Deleted card {card_id}")

    async def due_queue(self, as_of: date | None = None) -> tuple[Card, ...]:
        """Fresh read of the store, filtered and ordered for review."""
        cards = await self._store.read_all()
        return build_due_queue(cards, as_of or self.today())

    async def due_summary(self, as_of: date | None = None) -> DueSummary:
        cards = await self._store.read_all()
        return summarize_due(cards, as_of or self.today())

    async def due_overview(
        self, as_of: date | None = None
    ) -> tuple[tuple[Card, ...], DueSummary]:
        """Queue and summary built from one read, so the two always agree."""
        cards = await self._store.read_all()
        day = as_of or self.today()
        return build_due_queue(cards, day), summarize_due(cards, day)

    async def start_session(self, limit: int | None = None) -> ReviewSession:
        """
        Build today's queue and start a review session over it.

        Args:
            limit: Optional cap on the number of cards in this pass.
        """
        queue = await self.due_queue()
        if limit is not None:
            queue = queue[: max(limit, 0)]

        session = ReviewSession(self._store, timezone=self._timezone, clock=self._clock)
        session.start(queue)
        return session
