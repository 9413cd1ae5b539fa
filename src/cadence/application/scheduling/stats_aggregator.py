"""
Learner-facing study statistics.

Pure read-only projections over cards and review events; nothing here
mutates ledger state.
"""

from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from cadence.domain.constants import (
    RETENTION_SAMPLE_SIZE,
    STATS_WINDOW_HOURS,
    STREAK_REVIEWS_PER_DAY,
)
from cadence.domain.scheduling.models import Card, ReviewEvent, StudyStats


def compute_study_stats(
    cards: Sequence[Card],
    events: Sequence[ReviewEvent],
    now: datetime | None = None,
    window: timedelta = timedelta(hours=STATS_WINDOW_HOURS),
    sample_size: int = RETENTION_SAMPLE_SIZE,
) -> StudyStats:
    """
    Aggregate study metrics.

    Args:
        cards: All cards in scope.
        events: Review events in scope, in any order.
        now: Reference time (defaults to the current UTC time).
        window: How far back "today" reaches for reviewed_today.
        sample_size: Number of most recent events used for retention and study time.

    Returns:
        StudyStats. With no events, average_retention is 0.0.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    reviewed_today = _count_reviewed_since(events, now - window)
    sample = _recent_sample(events, sample_size)

    return StudyStats(
        total_cards=len(cards),
        due_today=sum(1 for c in cards if c.next_review <= now),
        # Lapsed cards reset to 0 repetitions and count as new again
        new_cards=sum(1 for c in cards if c.repetitions == 0),
        reviewed_today=reviewed_today,
        streak_days=streak_from_reviews(reviewed_today),
        average_retention=_retention_rate(sample),
        total_study_time=sum(e.time_spent for e in sample),
        cards_by_difficulty=dict(sorted(Counter(c.difficulty for c in cards).items())),
    )


def streak_from_reviews(reviewed_today: int) -> int:
    """
    Coarse streak proxy: one day per ten reviews in the window.

    Not a consecutive-calendar-day streak.
    """
    return reviewed_today // STREAK_REVIEWS_PER_DAY


def _count_reviewed_since(events: Sequence[ReviewEvent], cutoff: datetime) -> int:
    return sum(1 for e in events if e.reviewed_at >= cutoff)


def _recent_sample(events: Sequence[ReviewEvent], sample_size: int) -> list[ReviewEvent]:
    if sample_size <= 0:
        return []
    newest_first = sorted(events, key=lambda e: e.reviewed_at, reverse=True)
    return newest_first[:sample_size]


def _retention_rate(events: Sequence[ReviewEvent]) -> float:
    if not events:
        return 0.0
    return sum(1 for e in events if e.was_correct) / len(events)
