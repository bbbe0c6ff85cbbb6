"""
Local Card Store — Infrastructure adapter for a JSON file on disk.

Implements CardStore by rewriting a single JSON document on every mutation.
"""

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from datetime import date
from pathlib import Path
from typing import Any

from ulid import ULID

from focusforge.domain.cards.calendar import utc_now
from focusforge.domain.cards.errors import NotFound, PersistenceError
from focusforge.domain.cards.models import Card, NewCard
from focusforge.domain.cards.ports import CardStore
from focusforge.domain.constants import DEFAULT_TIMEZONE
from focusforge.infrastructure.records import card_from_record, card_to_record, encode_update

FORMAT_VERSION = 1


def generate_card_id() -> str:
    """Generate a sortable, collision-free card id."""
    return str(ULID())


class LocalCardStore(CardStore):
    """
    Stores every card in one JSON file:

        {"version": 1, "cards": {"<id>": {...record...}}}

    The file is created on first write. Writes go to a temp file that then
    replaces the original, so a crash never leaves a half-written deck.
    """

    def __init__(self, path: Path, timezone: str = DEFAULT_TIMEZONE):
        super().__init__()
        self.path = path
        self.timezone = timezone
        self.logger = logging.getLogger(__name__)

    async def create(self, new_card: NewCard, today: date) -> str:
        records = self._load()
        card_id = generate_card_id()
        card = Card.new(card_id, new_card, today=today, created_at=utc_now())
        records[card_id] = card_to_record(card, self.timezone)
        self._save(records)
        self.logger.info(f"Created card {card_id}")
        self._notify()
        return card_id

    async def read_all(self) -> list[Card]:
        records = self._load()
        return [
            card_from_record(card_id, record, self.timezone) for card_id, record in records.items()
        ]

    async def update(self, card_id: str, fields: Mapping[str, Any]) -> None:
        records = self._load()
        if card_id not in records:
            raise NotFound(card_id)
        records[card_id] = {**records[card_id], **encode_update(fields, self.timezone)}
        self._save(records)
        self.logger.debug(f"Updated card {card_id}: {sorted(fields)}")
        self._notify()

    async def delete(self, card_id: str) -> None:
        records = self._load()
        if records.pop(card_id, None) is None:
            raise NotFound(card_id)
        self._save(records)
        self.logger.info(f"Deleted card {card_id}")
        self._notify()

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Could not read card file {self.path}: {e}")
            raise PersistenceError(f"Could not read card file {self.path}: {e}") from e

        cards = data.get("cards") if isinstance(data, dict) else None
        if not isinstance(cards, dict):
            raise PersistenceError(f"Card file {self.path} has no 'cards' mapping")
        return cards

    def _save(self, records: dict[str, dict[str, Any]]) -> None:
        payload = json.dumps({"version": FORMAT_VERSION, "cards": records}, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".cards-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            self.logger.error(f"Could not write card file {self.path}: {e}")
            raise PersistenceError(f"Could not write card file {self.path}: {e}") from e
