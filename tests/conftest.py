from datetime import datetime, timedelta, timezone

import pytest

from cadence.domain.scheduling.models import Card, Deck, ReviewEvent


@pytest.fixture
def now():
    """Fixed reference instant shared by scheduling tests."""
    return datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_card(now):
    """Factory for cards due at `now` unless overridden."""

    def _make_card(card_id: str = "c1", **overrides) -> Card:
        fields = {
            "id": card_id,
            "question": f"Question {card_id}?",
            "answer": f"Answer {card_id}",
            "next_review": now,
        }
        fields.update(overrides)
        return Card(**fields)

    return _make_card


@pytest.fixture
def make_event(now):
    """Factory for review events; correctness follows the rating."""

    def _make_event(
        card_id: str = "c1",
        rating: int = 4,
        time_spent: float = 10.0,
        reviewed_at: datetime | None = None,
    ) -> ReviewEvent:
        return ReviewEvent(
            card_id=card_id,
            rating=rating,
            time_spent=time_spent,
            was_correct=rating >= 3,
            previous_interval=0,
            previous_ease=2.5,
            reviewed_at=now if reviewed_at is None else reviewed_at,
        )

    return _make_event


@pytest.fixture
def deck():
    return Deck(id="d1", name="Meeting Notes")


@pytest.fixture
def overdue_cards(make_card, now):
    """Thirty cards due at staggered times in the past."""
    return [
        make_card(f"c{i:02d}", next_review=now - timedelta(hours=30 - i), deck_id="d1")
        for i in range(30)
    ]


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home
