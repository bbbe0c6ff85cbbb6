"""
Stored-record encoding shared by the card store adapters.

Records use the camelCase field names shared with the web dashboard
(`eFactor`, `nextReviewDate`, ...). Day-granularity dates are stored as
the UTC instant of their local midnight in the store's calendar zone,
timestamps as full ISO-8601 strings.
"""

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from focusforge.domain.cards.calendar import (
    decode_day,
    decode_timestamp,
    encode_day,
    encode_timestamp,
)
from focusforge.domain.cards.errors import CardDecodeError, PersistenceError
from focusforge.domain.cards.models import Card
from focusforge.domain.cards.ports import SCHEDULING_FIELDS
from focusforge.domain.constants import DEFAULT_TIMEZONE, MIN_EASE_FACTOR

WIRE_NAMES = {
    "question": "question",
    "answer": "answer",
    "interval": "interval",
    "ease_factor": "eFactor",
    "next_review_date": "nextReviewDate",
    "last_review_date": "lastReviewDate",
    "created_at": "createdAt",
}

REQUIRED = ("question", "answer", "interval", "eFactor", "nextReviewDate")


def card_to_record(card: Card, tz: str = DEFAULT_TIMEZONE) -> dict[str, Any]:
    """Encode every field of a card except its id."""
    return {
        "question": card.question,
        "answer": card.answer,
        "interval": card.interval,
        "eFactor": card.ease_factor,
        "nextReviewDate": encode_day(card.next_review_date, tz),
        "lastReviewDate": (
            encode_timestamp(card.last_review_date) if card.last_review_date else None
        ),
        "createdAt": encode_timestamp(card.created_at) if card.created_at else None,
    }


def encode_update(fields: Mapping[str, Any], tz: str = DEFAULT_TIMEZONE) -> dict[str, Any]:
    """
    Encode a partial scheduling update.

    Only scheduling fields may be written after creation; question and answer
    are immutable.
    """
    unknown = set(fields) - SCHEDULING_FIELDS
    if unknown:
        raise PersistenceError(f"Refusing to update non-scheduling fields: {sorted(unknown)}")

    encoded: dict[str, Any] = {}
    for name, value in fields.items():
        wire = WIRE_NAMES[name]
        if name == "next_review_date":
            encoded[wire] = encode_day(value, tz)
        elif name == "last_review_date":
            encoded[wire] = encode_timestamp(value) if value is not None else None
        elif name == "interval":
            encoded[wire] = int(value)
        else:
            encoded[wire] = float(value)
    return encoded


def card_from_record(
    card_id: str, record: Mapping[str, Any], tz: str = DEFAULT_TIMEZONE
) -> Card:
    """
    Decode a stored record.

    Missing or out-of-range scheduling fields are an error, not a reason to
    fill in defaults. `createdAt` is optional; older dashboard documents never
    carried it.
    """
    missing = [name for name in REQUIRED if record.get(name) is None]
    if missing:
        raise CardDecodeError(f"Card {card_id} is missing fields: {', '.join(missing)}")

    try:
        last_raw = record.get("lastReviewDate")
        created_raw = record.get("createdAt")
        interval = int(record["interval"])
        ease_factor = float(record["eFactor"])
        next_review_date = _day(record["nextReviewDate"], tz)
        created_at = _moment(created_raw) if created_raw else None
        last_review_date = _moment(last_raw) if last_raw else None
    except (TypeError, ValueError) as e:
        raise CardDecodeError(f"Card {card_id} has a malformed field: {e}") from e

    if interval < 0:
        raise CardDecodeError(f"Card {card_id} has a negative interval: {interval}")
    if ease_factor < MIN_EASE_FACTOR:
        raise CardDecodeError(
            f"Card {card_id} has an ease factor below {MIN_EASE_FACTOR}: {ease_factor}"
        )

    return Card(
        id=card_id,
        question=str(record["question"]),
        answer=str(record["answer"]),
        interval=interval,
        ease_factor=ease_factor,
        next_review_date=next_review_date,
        created_at=created_at,
        last_review_date=last_review_date,
    )


def _day(raw: Any, tz: str) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    return decode_day(str(raw), tz)


def _moment(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    return decode_timestamp(str(raw))
