"""
Error taxonomy for the flashcard domain.

Validation errors (InvalidInput, InvalidQuality) are raised before any store
call. Store adapters raise NotFound and PersistenceError. None of these are
fatal; callers correct their input or retry.
"""


class FlashcardError(Exception):
    """Base class for all flashcard errors."""


class InvalidInput(FlashcardError):
    """A card payload failed validation (e.g. empty question or answer)."""


class InvalidQuality(FlashcardError):
    """A quality rating outside [0, 5] was supplied."""

    def __init__(self, quality: object):
        self.quality = quality
        super().__init__(f"Quality rating must be an integer in [0, 5], got {quality!r}")


class NotFound(FlashcardError):
    """The referenced card is no longer present in the store."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"Card not found: {card_id}")


class PersistenceError(FlashcardError):
    """The card store failed to read or write."""


class CardDecodeError(PersistenceError):
    """A stored record is missing or has malformed scheduling fields."""


class InvalidTransition(FlashcardError):
    """A review session operation was called from the wrong phase."""

    def __init__(self, operation: str, phase: str):
        self.operation = operation
        self.phase = phase
        super().__init__(f"Cannot {operation} while session is {phase}")
