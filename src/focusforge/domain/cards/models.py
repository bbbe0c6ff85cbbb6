"""
Domain models for flashcards and their scheduling state.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import IntEnum

from focusforge.domain.constants import INITIAL_EASE_FACTOR, INITIAL_INTERVAL, MIN_EASE_FACTOR

from .errors import InvalidInput


class Quality(IntEnum):
    """The ratings offered after revealing an answer (0=total failure, 5=perfect)."""

    AGAIN = 0
    HARD = 2
    GOOD = 4
    EASY = 5


@dataclass(frozen=True)
class SchedulingState:
    """
    The inputs to the scheduler.

    Attributes:
        interval: Days until the next review (>= 0).
        ease_factor: Interval growth multiplier (>= 1.3).
    """

    interval: int = INITIAL_INTERVAL
    ease_factor: float = INITIAL_EASE_FACTOR

    def __post_init__(self):
        if self.interval < 0:
            raise InvalidInput(f"Interval cannot be negative, got {self.interval}")
        if self.ease_factor < MIN_EASE_FACTOR:
            raise InvalidInput(
                f"Ease factor cannot be below {MIN_EASE_FACTOR}, got {self.ease_factor}"
            )


@dataclass(frozen=True)
class ScheduleUpdate:
    """Scheduler output for a single review."""

    interval: int
    ease_factor: float
    next_review_date: date


@dataclass(frozen=True)
class NewCard:
    """Validated payload for creating a card."""

    question: str
    answer: str

    def __post_init__(self):
        if not self.question or not self.question.strip():
            raise InvalidInput("Question cannot be empty.")
        if not self.answer or not self.answer.strip():
            raise InvalidInput("Answer cannot be empty.")


@dataclass(frozen=True)
class Card:
    """
    A stored flashcard.

    Scheduling fields are always present: defaults for interval and ease factor
    apply only when a card is created (see `Card.new`), never when a record is read back.
    """

    id: str
    question: str
    answer: str
    interval: int
    ease_factor: float
    next_review_date: date
    # Unknown for cards written before creation times were recorded
    created_at: datetime | None = None
    last_review_date: datetime | None = None

    @classmethod
    def new(cls, card_id: str, payload: NewCard, today: date, created_at: datetime) -> "Card":
        return cls(
            id=card_id,
            question=payload.question,
            answer=payload.answer,
            interval=INITIAL_INTERVAL,
            ease_factor=INITIAL_EASE_FACTOR,
            next_review_date=today,
            created_at=created_at,
            last_review_date=None,
        )

    @property
    def state(self) -> SchedulingState:
        return SchedulingState(interval=self.interval, ease_factor=self.ease_factor)

    @property
    def is_new(self) -> bool:
        return self.last_review_date is None

    def with_review(self, update: ScheduleUpdate, reviewed_at: datetime) -> "Card":
        return replace(
            self,
            interval=update.interval,
            ease_factor=update.ease_factor,
            next_review_date=update.next_review_date,
            last_review_date=reviewed_at,
        )
