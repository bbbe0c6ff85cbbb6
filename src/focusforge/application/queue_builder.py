"""
Queue builder for review sessions.

Builds ordered review queues by:
1. Filtering a card snapshot down to cards due on or before a given day
2. Sorting by due day, oldest first
3. Breaking ties on card id so repeated builds give the same order
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

from focusforge.domain.cards.calendar import as_day
from focusforge.domain.cards.models import Card

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DueSummary:
    """Counts describing a deck on a given day."""

    as_of: date
    total: int  # All cards in the snapshot
    due: int  # next_review_date <= as_of
    overdue: int  # next_review_date < as_of
    new: int  # Due and never reviewed


def build_due_queue(cards: Iterable[Card], as_of: date | datetime) -> tuple[Card, ...]:
    """
    Build the review queue for a day.

    Args:
        cards: A snapshot of stored cards. Not mutated.
        as_of: The review day; a datetime is truncated to its date.

    Returns:
        Every card with next_review_date <= as_of, ordered by
        (next_review_date, id).
    """
    day = as_day(as_of)
    due = [card for card in cards if card.next_review_date <= day]
    due.sort(key=_queue_order)

    logger.debug(f"Built due queue for {day}: {len(due)} cards")
    return tuple(due)


def summarize_due(cards: Iterable[Card], as_of: date | datetime) -> DueSummary:
    """
    Summarize how much review work a snapshot holds for a day.
    """
    day = as_day(as_of)
    snapshot = list(cards)
    queue = build_due_queue(snapshot, day)

    return DueSummary(
        as_of=day,
        total=len(snapshot),
        due=len(queue),
        overdue=sum(1 for card in queue if card.next_review_date < day),
        new=sum(1 for card in queue if card.is_new),
    )


def _queue_order(card: Card) -> tuple[date, str]:
    return (card.next_review_date, card.id)
