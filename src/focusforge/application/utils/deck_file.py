"""Parsing of YAML deck files for bulk card import.

A deck file holds a top-level ``cards`` list::

    cards:
      - question: What is the capital of France?
        answer: Paris
      - Front: 2 + 2
        Back: "4"
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # type: ignore
import yaml.constructor
import yaml.error

from focusforge.domain.cards.errors import InvalidInput

QUESTION_KEYS = ("question", "Front", "front")
ANSWER_KEYS = ("answer", "Back", "back")


@dataclass(frozen=True)
class DeckEntry:
    question: str
    answer: str
    line: int  # 1-based line of the entry in the source file


class UniqueKeyLoader(yaml.SafeLoader):
    """Custom YAML loader that forbids duplicate keys."""

    def construct_mapping(self, node, deep=False):
        mapping = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in mapping:
                raise yaml.constructor.ConstructorError(
                    None, None, f"found duplicate key '{key}'", key_node.start_mark
                )
            mapping.add(key)

        result = super().construct_mapping(node, deep)
        if isinstance(result, dict):
            # Inject line number (1-based)
            result["__line__"] = node.start_mark.line + 1
        return result


def parse_deck(text: str) -> list[DeckEntry]:
    """
    Parse deck YAML into entries.

    Raises:
        InvalidInput: The YAML is malformed, has no ``cards`` list, or an entry
            lacks a non-empty question or answer.
    """
    # Fix tabs (common user error)
    if "\t" in text:
        text = text.replace("\t", "  ")

    try:
        meta = yaml.load(text, Loader=UniqueKeyLoader) or {}
    except yaml.error.YAMLError as e:
        raise InvalidInput(f"Invalid deck YAML: {e}") from e

    cards = meta.get("cards") if isinstance(meta, dict) else None
    if not isinstance(cards, list):
        raise InvalidInput("Deck file must contain a top-level 'cards' list.")

    entries: list[DeckEntry] = []
    for index, card in enumerate(cards, start=1):
        if not isinstance(card, dict):
            raise InvalidInput(f"Card #{index} is not a mapping.")
        line = card.get("__line__", 0)
        question = _pick(card, QUESTION_KEYS)
        answer = _pick(card, ANSWER_KEYS)
        if not question:
            raise InvalidInput(f"Card #{index} (line {line}) has an empty question.")
        if not answer:
            raise InvalidInput(f"Card #{index} (line {line}) has an empty answer.")
        entries.append(DeckEntry(question=question, answer=answer, line=line))

    return entries


def load_deck(path: Path) -> list[DeckEntry]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise InvalidInput(f"Could not read deck file {path}: {e}") from e
    return parse_deck(text.lstrip("\ufeff"))


def _pick(card: dict[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = card.get(key)
        if value is not None:
            return str(value).strip()
    return ""
