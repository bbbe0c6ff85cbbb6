"""FocusForge: spaced-repetition flashcards."""
