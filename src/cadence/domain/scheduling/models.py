"""
Domain models for card scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime

from cadence.domain.constants import (
    DEFAULT_DIFFICULTY,
    DEFAULT_EASE_FACTOR,
    DEFAULT_NEW_CARDS_PER_DAY,
    DEFAULT_REVIEW_LIMIT,
)


@dataclass
class Card:
    """
    A single recall unit with its current scheduling state.

    Attributes:
        ease_factor: Growth multiplier for intervals (>= 1.3).
        interval: Days until the next scheduled review (0 = unseen, <= 365).
        repetitions: Consecutive successful recalls since the last lapse.
        next_review: The card is due once now >= next_review.
        last_reviewed: None if the card was never reviewed.
        difficulty: Author-assigned 1-5 value. Display and tie-break only.
    """

    id: str
    question: str
    answer: str
    next_review: datetime
    context: str | None = None
    deck_id: str | None = None
    meeting_id: str | None = None

    # SM-2 state
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0
    last_reviewed: datetime | None = None

    # Lifetime counters (derived from the review log)
    times_reviewed: int = 0
    times_correct: int = 0
    average_time: float | None = None  # seconds

    difficulty: int = DEFAULT_DIFFICULTY


@dataclass(frozen=True)
class ReviewEvent:
    """
    An immutable record of one learner interaction with a card.

    previous_interval and previous_ease capture the state *before* the review.
    """

    card_id: str
    rating: int
    time_spent: float  # seconds
    was_correct: bool
    previous_interval: int
    previous_ease: float
    reviewed_at: datetime


@dataclass(frozen=True)
class ReviewTally:
    """
    Lifetime counters for a card, folded from its review events.
    """

    times_reviewed: int = 0
    times_correct: int = 0
    average_time: float | None = None

    def add(self, event: ReviewEvent) -> "ReviewTally":
        previous_total = (self.average_time or 0.0) * self.times_reviewed
        count = self.times_reviewed + 1
        return ReviewTally(
            times_reviewed=count,
            times_correct=self.times_correct + (1 if event.was_correct else 0),
            average_time=(previous_total + event.time_spent) / count,
        )


@dataclass
class Deck:
    """An organizational grouping of cards with aggregate counters."""

    id: str
    name: str
    description: str | None = None
    new_cards_per_day: int = DEFAULT_NEW_CARDS_PER_DAY
    review_limit: int = DEFAULT_REVIEW_LIMIT
    total_cards: int = 0
    mature_cards: int = 0


@dataclass(frozen=True)
class NextState:
    """Scheduling state computed for a card after a single rating."""

    next_review_at: datetime
    new_interval: int
    new_ease_factor: float
    new_repetitions: int


@dataclass(frozen=True)
class MaturityCrossed:
    """
    Emitted when a review lifts a card's interval past the maturity threshold.

    The caller applies it to the owning deck; the scheduler never touches decks.
    """

    card_id: str
    deck_id: str | None
    interval: int


@dataclass(frozen=True)
class ReviewOutcome:
    """Everything a caller needs to persist after one review."""

    card: Card
    event: ReviewEvent
    maturity: MaturityCrossed | None = None


@dataclass
class SessionStats:
    reviewed: int = 0
    correct: int = 0
    time_spent: float = 0.0


@dataclass
class ReviewSession:
    """
    A bounded, ordered set of due cards being worked through by one learner.

    Session-scoped: owned by a single caller and never shared between sessions.
    """

    cards: list[Card]
    deck_id: str | None = None
    current_index: int = 0
    stats: SessionStats = field(default_factory=SessionStats)

    @property
    def current_card(self) -> Card | None:
        if self.is_finished:
            return None
        return self.cards[self.current_index]

    @property
    def is_finished(self) -> bool:
        return self.current_index >= len(self.cards)

    @property
    def remaining(self) -> int:
        return max(0, len(self.cards) - self.current_index)

    def record(self, event: ReviewEvent) -> None:
        """
        Advance past the current card and fold the event into running stats.

        Raises:
            ValueError: If the session is finished or the event is for a card
                other than the one currently shown.
        """
        current = self.current_card
        if current is None:
            raise ValueError(f"Session is finished; cannot record review of {event.card_id}")
        if event.card_id != current.id:
            raise ValueError(f"Expected a review of {current.id}, got {event.card_id}")

        self.stats.reviewed += 1
        if event.was_correct:
            self.stats.correct += 1
        self.stats.time_spent += event.time_spent
        self.current_index += 1


@dataclass(frozen=True)
class StudyStats:
    total_cards: int
    due_today: int
    new_cards: int
    reviewed_today: int
    streak_days: int
    average_retention: float
    total_study_time: float
    cards_by_difficulty: dict[int, int]


@dataclass(frozen=True)
class MasteryStats:
    """
    average_time_to_mastery is None when no mature cards exist yet.
    """

    mature_cards: int
    total_cards: int
    mastery_percentage: float
    average_time_to_mastery: int | None


@dataclass(frozen=True)
class ForecastDay:
    date: str  # ISO calendar date (UTC)
    due_count: int
    new_count: int
    review_count: int
