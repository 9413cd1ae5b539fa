"""
Review Service: Application layer orchestrator.

Coordinates the card ledger with the pure scheduling and analytics functions.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, Field

from cadence.application.id_service import assign_to_deck, new_deck
from cadence.domain.constants import (
    DEFAULT_FORECAST_DAYS,
    DEFAULT_NEW_CARDS_PER_DAY,
    DEFAULT_REVIEW_LIMIT,
    DEFAULT_SESSION_LIMIT,
    RETENTION_SAMPLE_SIZE,
    STATS_WINDOW_HOURS,
)
from cadence.domain.scheduling.models import (
    Card,
    Deck,
    ForecastDay,
    MasteryStats,
    ReviewOutcome,
    ReviewSession,
    StudyStats,
)
from cadence.domain.scheduling.ports import CardLedger

from . import due_selector, forecast, stats_aggregator
from .interval_scheduler import apply_maturity, review_card

logger = logging.getLogger(__name__)


class ReviewSubmission(BaseModel):
    """A learner's answer to one card, as received from upstream."""

    card_id: str = Field(min_length=1)
    rating: float  # clamped by the scheduler, not rejected here
    time_spent: float = Field(gt=0)


class DeckDraft(BaseModel):
    """Fields for a deck that does not exist yet."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    new_cards_per_day: int = Field(default=DEFAULT_NEW_CARDS_PER_DAY, ge=0)
    review_limit: int = Field(default=DEFAULT_REVIEW_LIMIT, ge=0)


class ReviewService:
    """
    Application service for running review sessions against a card ledger.

    Follows Dependency Inversion: depends on the CardLedger abstraction,
    not concrete adapter implementations.
    """

    def __init__(
        self,
        ledger: CardLedger,
        session_limit: int = DEFAULT_SESSION_LIMIT,
        stats_window: timedelta = timedelta(hours=STATS_WINDOW_HOURS),
        retention_sample_size: int = RETENTION_SAMPLE_SIZE,
        forecast_days: int = DEFAULT_FORECAST_DAYS,
    ):
        """
        Args:
            ledger: The repository (port) holding cards, decks and reviews.
            session_limit: Default cap on cards per session.
            stats_window: Look-back window for reviewed_today.
            retention_sample_size: Most recent events used for retention.
            forecast_days: Default forecast horizon.
        """
        self._ledger = ledger
        self.session_limit = session_limit
        self.stats_window = stats_window
        self.retention_sample_size = retention_sample_size
        self.forecast_days = forecast_days

    async def get_review_session(
        self,
        deck_id: str | None = None,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> ReviewSession:
        """
        Build a fresh session from the cards currently due.
        """
        cards = await self._ledger.list_cards(deck_id)
        session = due_selector.start_session(
            cards,
            now=now,
            limit=self.session_limit if limit is None else limit,
            deck_id=deck_id,
        )
        logger.info(f"Review session ready: {len(session.cards)} cards (deck={deck_id})")
        return session

    async def submit_review(
        self,
        submission: ReviewSubmission,
        now: datetime | None = None,
    ) -> ReviewOutcome:
        """
        Schedule a card from a rating and persist every resulting write.

        The card lock is held for the whole read-compute-write cycle. Every
        read happens before the first write, so a failed lookup leaves the
        ledger untouched.

        Raises:
            CardNotFoundError: If the card does not exist.
            DeckNotFoundError: If the card matured into a deck that does not exist.
            InvalidCardStateError: If the stored card is corrupted.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        async with self._ledger.lock_card(submission.card_id):
            card = await self._ledger.get_card(submission.card_id)
            history = await self._ledger.get_review_history(card.id)

            outcome = review_card(
                card,
                submission.rating,
                submission.time_spent,
                history=history,
                now=now,
            )

            matured_deck = None
            if outcome.maturity is not None and outcome.maturity.deck_id is not None:
                deck = await self._ledger.get_deck(outcome.maturity.deck_id)
                matured_deck = apply_maturity(deck, outcome.maturity)

            await self._ledger.save_card(outcome.card)
            await self._ledger.append_review(outcome.event)

            if matured_deck is not None:
                await self._ledger.save_deck(matured_deck)
                logger.info(
                    f"Card {card.id} matured (interval {outcome.maturity.interval}d) "
                    f"in deck {matured_deck.id}"
                )

        logger.info(
            f"Reviewed {card.id}: rating={outcome.event.rating} "
            f"next in {outcome.card.interval}d"
        )
        return outcome

    async def create_deck(self, draft: DeckDraft) -> Deck:
        deck = new_deck(
            draft.name,
            description=draft.description,
            new_cards_per_day=draft.new_cards_per_day,
            review_limit=draft.review_limit,
        )
        await self._ledger.save_deck(deck)
        logger.info(f"Created deck {deck.id} ({deck.name})")
        return deck

    async def list_decks(self) -> list[Deck]:
        return await self._ledger.list_decks()

    async def add_cards(self, deck_id: str, cards: list[Card]) -> Deck:
        """
        Register new cards in a deck and persist the deck's updated total.
        """
        deck = await self._ledger.get_deck(deck_id)
        deck, placed = assign_to_deck(deck, cards)
        for card in placed:
            await self._ledger.save_card(card)
        await self._ledger.save_deck(deck)
        return deck

    async def get_study_stats(self, now: datetime | None = None) -> StudyStats:
        if now is None:
            now = datetime.now(timezone.utc)

        cards = await self._ledger.list_cards()
        # reviewed_today needs every event in the window, retention only the sample
        windowed = await self._ledger.get_recent_reviews(since=now - self.stats_window)
        sampled = await self._ledger.get_recent_reviews(limit=self.retention_sample_size)
        stats = stats_aggregator.compute_study_stats(
            cards,
            sampled,
            now=now,
            window=self.stats_window,
            sample_size=self.retention_sample_size,
        )
        reviewed_today = len(windowed)
        return replace(
            stats,
            reviewed_today=reviewed_today,
            streak_days=stats_aggregator.streak_from_reviews(reviewed_today),
        )

    async def get_mastery_stats(self, deck_id: str | None = None) -> MasteryStats:
        cards = await self._ledger.list_cards(deck_id)
        return forecast.mastery_stats(cards)

    async def get_forecast(
        self,
        deck_id: str | None = None,
        days: int | None = None,
        now: datetime | None = None,
    ) -> list[ForecastDay]:
        cards = await self._ledger.list_cards(deck_id)
        return forecast.forecast_schedule(
            cards, days=self.forecast_days if days is None else days, now=now
        )
