"""
Ports (interfaces) for the card ledger.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime

from .models import Card, Deck, ReviewEvent


class CardLedger(ABC):
    """
    Port for reading and writing cards, decks and review history.

    Implementations:
        - InMemoryCardLedger: Process-local dictionaries, used by tests and the CLI.
        - YamlSnapshotLedger: Loads and dumps a YAML snapshot around an in-memory ledger.

    Reviews follow a read-modify-write pattern that is not atomic on its own.
    Adapters must serialize writers for a single card through lock_card().
    """

    @abstractmethod
    async def get_card(self, card_id: str) -> Card:
        """
        Fetch one card.

        Raises:
            CardNotFoundError: If no card has this id.
        """
        pass

    @abstractmethod
    async def list_cards(self, deck_id: str | None = None) -> list[Card]:
        """
        List cards, optionally restricted to one deck.
        """
        pass

    @abstractmethod
    async def save_card(self, card: Card) -> None:
        pass

    @abstractmethod
    async def get_deck(self, deck_id: str) -> Deck:
        """
        Raises:
            DeckNotFoundError: If no deck has this id.
        """
        pass

    @abstractmethod
    async def list_decks(self) -> list[Deck]:
        pass

    @abstractmethod
    async def save_deck(self, deck: Deck) -> None:
        pass

    @abstractmethod
    async def append_review(self, event: ReviewEvent) -> None:
        """
        Append a review event. Events are never mutated once appended.
        """
        pass

    @abstractmethod
    async def get_review_history(self, card_id: str) -> list[ReviewEvent]:
        """
        Fetch the review history of one card, sorted by reviewed_at ascending.
        """
        pass

    @abstractmethod
    async def get_recent_reviews(
        self, limit: int | None = None, since: datetime | None = None
    ) -> list[ReviewEvent]:
        """
        Fetch review events across all cards, newest first.

        Args:
            limit: Maximum number of events to return.
            since: Only return events reviewed at or after this instant.
        """
        pass

    @abstractmethod
    def lock_card(self, card_id: str) -> AbstractAsyncContextManager[None]:
        """
        Return an async context manager that holds the single-writer lock for a card.
        """
        pass
