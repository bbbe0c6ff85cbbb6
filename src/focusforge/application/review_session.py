"""
Review session state machine.

One ReviewSession drives a single pass over a frozen due queue:

    IDLE --start--> PRESENTING(0) --reveal--> AWAITING_RATING(0) --rate--> PRESENTING(1) ...
                                                                     \\--> COMPLETE

A rating only advances the session once the store has acknowledged the
update. A failed update leaves the session on the same card so the caller
can retry. `skip()` moves past a card without writing it.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from enum import Enum

from focusforge.application.scheduler import compute_next_state
from focusforge.domain.cards.calendar import today_in, utc_now
from focusforge.domain.cards.errors import InvalidTransition
from focusforge.domain.cards.models import Card, ScheduleUpdate
from focusforge.domain.cards.ports import CardStore
from focusforge.domain.constants import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    PRESENTING = "presenting"
    AWAITING_RATING = "awaiting_rating"
    COMPLETE = "complete"


class ReviewSession:
    """
    Walks a review queue, schedules each rated card and persists the result.

    The session owns its state; nothing is shared between instances. At most
    one call may be in flight at a time.
    """

    def __init__(
        self,
        store: CardStore,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            store: Where rated cards are persisted.
            timezone: Calendar zone used to decide which day a review falls on.
            clock: Returns the current instant; injectable for tests.
        """
        self._store = store
        self._timezone = timezone
        self._clock = clock
        self._queue: tuple[Card, ...] = ()
        self._position = 0
        self._phase = Phase.IDLE
        self._reviewed: list[Card] = []
        self._persisting = False
        # Bumped on start/abort so a rating that resolves after an abort is dropped
        self._generation = 0

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def position(self) -> int:
        return self._position

    @property
    def queue(self) -> tuple[Card, ...]:
        return self._queue

    @property
    def total(self) -> int:
        return len(self._queue)

    @property
    def remaining(self) -> int:
        if self._phase in (Phase.PRESENTING, Phase.AWAITING_RATING):
            return self.total - self._position
        return 0

    @property
    def reviewed(self) -> list[Card]:
        """Cards whose ratings were persisted in this pass, with their new schedule."""
        return list(self._reviewed)

    @property
    def is_complete(self) -> bool:
        return self._phase is Phase.COMPLETE

    @property
    def current_card(self) -> Card | None:
        if self._phase in (Phase.PRESENTING, Phase.AWAITING_RATING):
            return self._queue[self._position]
        return None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, queue: Iterable[Card]) -> Card | None:
        """
        Begin a pass over `queue`, which is frozen for the rest of the session.

        Returns the first card, or None when there is nothing to review.
        """
        self._require(Phase.IDLE, "start")

        self._generation += 1
        self._queue = tuple(queue)
        self._position = 0
        self._reviewed = []

        if not self._queue:
            self._phase = Phase.COMPLETE
            logger.info("Review session started with an empty queue")
            return None

        self._phase = Phase.PRESENTING
        logger.info(f"Review session started with {len(self._queue)} cards")
        return self._queue[0]

    def reveal_answer(self) -> Card:
        """Show the answer of the current card. Does not touch the card."""
        self._require(Phase.PRESENTING, "reveal the answer")
        self._phase = Phase.AWAITING_RATING
        return self._queue[self._position]

    async def submit_rating(self, quality: int) -> ScheduleUpdate:
        """
        Rate the current card, persist its new schedule and advance.

        Raises:
            InvalidQuality: The rating is outside [0, 5]; nothing changes.
            NotFound: The card was deleted from the store; the session stays put.
            PersistenceError: The store failed; the session stays put.
            InvalidTransition: No answer is awaiting a rating.
        """
        self._require(Phase.AWAITING_RATING, "submit a rating")
        if self._persisting:
            raise InvalidTransition("submit a rating", "persisting")

        card = self._queue[self._position]
        reviewed_at = self._clock()
        update = compute_next_state(card.state, quality, today_in(self._timezone, reviewed_at))

        generation = self._generation
        self._persisting = True
        try:
            await self._store.update(
                card.id,
                {
                    "interval": update.interval,
                    "ease_factor": update.ease_factor,
                    "next_review_date": update.next_review_date,
                    "last_review_date": reviewed_at,
                },
            )
        except Exception as e:
            logger.error(f"Failed to persist review of card {card.id}: {e}")
            raise
        finally:
            self._persisting = False

        if generation != self._generation:
            logger.info(f"Session aborted while persisting card {card.id}; not advancing")
            return update

        self._reviewed.append(card.with_review(update, reviewed_at))
        logger.debug(
            f"Card {card.id} rated {quality}: interval={update.interval} "
            f"ease={update.ease_factor:.2f} next={update.next_review_date}"
        )
        self._advance()
        return update

    def skip(self) -> Card:
        """
        Move past the current card without rating it, e.g. after it was deleted
        from the store. The card is left untouched and is not counted as reviewed.
        """
        if self._phase not in (Phase.PRESENTING, Phase.AWAITING_RATING):
            raise InvalidTransition("skip a card", self._phase.value)
        if self._persisting:
            raise InvalidTransition("skip a card", "persisting")

        card = self._queue[self._position]
        logger.info(f"Skipped card {card.id}")
        self._advance()
        return card

    def abort(self) -> None:
        """Return to IDLE from any phase, discarding the queue."""
        self._generation += 1
        self._queue = ()
        self._position = 0
        self._phase = Phase.IDLE
        self._persisting = False

    def _advance(self) -> None:
        if self._position + 1 < len(self._queue):
            self._position += 1
            self._phase = Phase.PRESENTING
        else:
            self._phase = Phase.COMPLETE
            logger.info(f"Review session complete: {len(self._reviewed)} cards reviewed")

    def _require(self, phase: Phase, operation: str) -> None:
        if self._phase is not phase:
            raise InvalidTransition(operation, self._phase.value)
