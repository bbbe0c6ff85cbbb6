# Domain Cards Package
from .errors import (
    CardDecodeError,
    FlashcardError,
    InvalidInput,
    InvalidQuality,
    InvalidTransition,
    NotFound,
    PersistenceError,
)
from .models import Card, NewCard, Quality, ScheduleUpdate, SchedulingState
from .ports import CardStore

__all__ = [
    "Card",
    "NewCard",
    "Quality",
    "ScheduleUpdate",
    "SchedulingState",
    "CardStore",
    "FlashcardError",
    "InvalidInput",
    "InvalidQuality",
    "InvalidTransition",
    "NotFound",
    "PersistenceError",
    "CardDecodeError",
]
