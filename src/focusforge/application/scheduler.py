"""
SM-2 scheduling for flashcards.

This is a pure computation module with no I/O. Given a card's current
scheduling state and a quality rating, it returns the next state and due day.
"""

import math
from datetime import date, timedelta

from focusforge.domain.cards.errors import InvalidQuality
from focusforge.domain.cards.models import ScheduleUpdate, SchedulingState
from focusforge.domain.constants import (
    FIRST_INTERVAL,
    LAPSE_EASE_PENALTY,
    MAX_QUALITY,
    MIN_EASE_FACTOR,
    MIN_QUALITY,
    PASSING_QUALITY,
    SECOND_INTERVAL,
)


def compute_next_state(state: SchedulingState, quality: int, today: date) -> ScheduleUpdate:
    """
    Apply one review to a scheduling state.

    Args:
        state: The card's interval and ease factor before the review.
        quality: Recall rating in [0, 5]; 3 and above counts as correct.
        today: The review day. Only the date participates in the arithmetic.

    Returns:
        ScheduleUpdate with the new interval, ease factor and due day.

    Raises:
        InvalidQuality: If quality is not an integer in [0, 5].
    """
    _validate_quality(quality)

    if quality >= PASSING_QUALITY:
        ease = _ease_after_success(state.ease_factor, quality)
        interval = _interval_after_success(state.interval, ease)
    else:
        ease = max(state.ease_factor - LAPSE_EASE_PENALTY, MIN_EASE_FACTOR)
        interval = 0

    return ScheduleUpdate(
        interval=interval,
        ease_factor=ease,
        next_review_date=today + timedelta(days=interval),
    )


def _validate_quality(quality: int) -> None:
    # bool is an int subclass; True/False are not ratings
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQuality(quality)
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise InvalidQuality(quality)


def _ease_after_success(ease: float, quality: int) -> float:
    if quality == PASSING_QUALITY:
        # Correct but difficult: ease stays where it is
        return ease

    miss = MAX_QUALITY - quality
    ease = ease + (0.1 - miss * (0.08 + miss * 0.02))
    return max(ease, MIN_EASE_FACTOR)


def _interval_after_success(interval: int, ease: float) -> int:
    if interval == 0:
        return FIRST_INTERVAL
    if interval == 1:
        return SECOND_INTERVAL
    return _round_half_up(interval * ease)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
