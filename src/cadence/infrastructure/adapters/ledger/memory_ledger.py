"""
In-Memory Ledger: Infrastructure adapter backed by process-local dictionaries.

Implements CardLedger for tests, the CLI and embedding callers that keep
state elsewhere.
"""

import asyncio
from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from dataclasses import replace
from datetime import datetime

from cadence.domain.errors import CardNotFoundError, DeckNotFoundError
from cadence.domain.scheduling.models import Card, Deck, ReviewEvent
from cadence.domain.scheduling.ports import CardLedger


class InMemoryCardLedger(CardLedger):
    """
    Stores copies of cards and decks so callers cannot mutate ledger state
    through references they hold.
    """

    def __init__(
        self,
        cards: Iterable[Card] = (),
        decks: Iterable[Deck] = (),
        reviews: Iterable[ReviewEvent] = (),
    ):
        self._cards: dict[str, Card] = {c.id: replace(c) for c in cards}
        self._decks: dict[str, Deck] = {d.id: replace(d) for d in decks}
        self._reviews: list[ReviewEvent] = sorted(reviews, key=lambda e: e.reviewed_at)
        self._locks: dict[str, asyncio.Lock] = {}

    async def get_card(self, card_id: str) -> Card:
        try:
            return replace(self._cards[card_id])
        except KeyError:
            raise CardNotFoundError(card_id) from None

    async def list_cards(self, deck_id: str | None = None) -> list[Card]:
        return [
            replace(c)
            for c in self._cards.values()
            if deck_id is None or c.deck_id == deck_id
        ]

    async def save_card(self, card: Card) -> None:
        self._cards[card.id] = replace(card)

    async def get_deck(self, deck_id: str) -> Deck:
        try:
            return replace(self._decks[deck_id])
        except KeyError:
            raise DeckNotFoundError(deck_id) from None

    async def list_decks(self) -> list[Deck]:
        return [replace(d) for d in self._decks.values()]

    async def save_deck(self, deck: Deck) -> None:
        self._decks[deck.id] = replace(deck)

    async def append_review(self, event: ReviewEvent) -> None:
        self._reviews.append(event)
        # Keep history ordered even if events arrive out of order
        if len(self._reviews) > 1 and self._reviews[-2].reviewed_at > event.reviewed_at:
            self._reviews.sort(key=lambda e: e.reviewed_at)

    async def get_review_history(self, card_id: str) -> list[ReviewEvent]:
        return [e for e in self._reviews if e.card_id == card_id]

    async def get_recent_reviews(
        self, limit: int | None = None, since: datetime | None = None
    ) -> list[ReviewEvent]:
        events = [e for e in reversed(self._reviews) if since is None or e.reviewed_at >= since]
        if limit is not None:
            events = events[: max(0, limit)]
        return events

    def lock_card(self, card_id: str) -> AbstractAsyncContextManager[None]:
        lock = self._locks.get(card_id)
        if lock is None:
            lock = self._locks[card_id] = asyncio.Lock()
        return lock

    def all_reviews(self) -> list[ReviewEvent]:
        return list(self._reviews)
