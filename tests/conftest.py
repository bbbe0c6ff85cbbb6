from datetime import UTC, date, datetime

import pytest

from focusforge.domain.cards.models import Card

# A fixed instant so "today" never depends on when the suite runs
NOW = datetime(2026, 10, 16, 12, 0, tzinfo=UTC)
TODAY = date(2026, 10, 16)


def _make_card(
    card_id: str = "c1",
    next_review_date: date = TODAY,
    interval: int = 0,
    ease_factor: float = 2.5,
    last_review_date: datetime | None = None,
    question: str | None = None,
) -> Card:
    return Card(
        id=card_id,
        question=question or f"Question {card_id}",
        answer=f"Answer {card_id}",
        interval=interval,
        ease_factor=ease_factor,
        next_review_date=next_review_date,
        created_at=datetime(2026, 1, 1, tzinfo=UTC),
        last_review_date=last_review_date,
    )


@pytest.fixture
def make_card():
    return _make_card


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and card files
    monkeypatch.setenv("HOME", str(home))
    for var in ("FOCUSFORGE_BACKEND", "FOCUSFORGE_TIMEZONE", "FOCUSFORGE_DATA_FILE"):
        monkeypatch.delenv(var, raising=False)
    return home
