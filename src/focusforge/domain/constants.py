"""Centralized constants for FocusForge.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Scheduling (SM-2) ----------
INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
INITIAL_INTERVAL = 0
FIRST_INTERVAL = 1  # days after the first successful review
SECOND_INTERVAL = 6  # days after the second successful review
LAPSE_EASE_PENALTY = 0.2
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3

# ---------- Calendar ----------
DEFAULT_TIMEZONE = "UTC"

# ---------- Firestore / HTTP ----------
REQUEST_TIMEOUT = 30.0
FIRESTORE_URL = "https://firestore.googleapis.com/v1"
FIRESTORE_PAGE_SIZE = 300
FLASHCARDS_COLLECTION = "flashcards"

# ---------- Local store ----------
DATA_FILE_NAME = "cards.json"
