"""Service for minting cards and decks with stable ids and default state."""

import logging
from dataclasses import replace
from datetime import datetime, timezone

from ulid import ULID

from cadence.domain.constants import (
    DEFAULT_DIFFICULTY,
    DEFAULT_NEW_CARDS_PER_DAY,
    DEFAULT_REVIEW_LIMIT,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
)
from cadence.domain.scheduling.models import Card, Deck

logger = logging.getLogger(__name__)


def generate_card_id() -> str:
    """Generate a stable card id using ULID."""
    return f"card_{ULID()}"


def generate_deck_id() -> str:
    return f"deck_{ULID()}"


def new_card(
    question: str,
    answer: str,
    context: str | None = None,
    deck_id: str | None = None,
    meeting_id: str | None = None,
    difficulty: int = DEFAULT_DIFFICULTY,
    now: datetime | None = None,
) -> Card:
    """
    Create an unseen card that is due immediately.

    Scheduling starts at ease 2.5, interval 0, repetitions 0.
    """
    if not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
        raise ValueError(
            f"difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}, got {difficulty}"
        )
    if now is None:
        now = datetime.now(timezone.utc)

    return Card(
        id=generate_card_id(),
        question=question,
        answer=answer,
        context=context,
        deck_id=deck_id,
        meeting_id=meeting_id,
        difficulty=difficulty,
        next_review=now,
    )


def new_deck(
    name: str,
    description: str | None = None,
    new_cards_per_day: int = DEFAULT_NEW_CARDS_PER_DAY,
    review_limit: int = DEFAULT_REVIEW_LIMIT,
) -> Deck:
    """Create an empty deck with a fresh id."""
    return Deck(
        id=generate_deck_id(),
        name=name,
        description=description,
        new_cards_per_day=new_cards_per_day,
        review_limit=review_limit,
    )


def assign_to_deck(deck: Deck, cards: list[Card]) -> tuple[Deck, list[Card]]:
    """
    Place cards in a deck and bump its total_cards counter.

    Returns the updated deck and the re-homed cards; inputs are left untouched.
    """
    moved = [replace(card, deck_id=deck.id) for card in cards]
    logger.info(f"Assigned {len(moved)} cards to deck {deck.id}")
    return replace(deck, total_cards=deck.total_cards + len(moved)), moved
