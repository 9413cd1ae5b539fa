"""
Forecast and mastery analytics.

Retention estimates, maturity classification and upcoming workload, all
derived from current card state. Nothing here simulates future reviews.
"""

import math
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from cadence.application.scheduling.interval_scheduler import round_half_up
from cadence.domain.constants import (
    DEFAULT_FORECAST_DAYS,
    MASTERY_REPETITION_DAYS,
    MATURE_INTERVAL_DAYS,
    SECONDS_PER_DAY,
)
from cadence.domain.scheduling.models import Card, ForecastDay, MasteryStats


def is_mature(card: Card) -> bool:
    return card.interval > MATURE_INTERVAL_DAYS


def estimate_retention(card: Card, now: datetime | None = None) -> float:
    """
    Estimate the probability the learner still recalls a card.

    R = exp(-t / S) where t = days since last review and S = interval * ease.
    A card that was never reviewed has retention 0.0.
    """
    if card.last_reviewed is None:
        return 0.0
    if now is None:
        now = datetime.now(timezone.utc)

    days_since_review = (now - card.last_reviewed).total_seconds() / SECONDS_PER_DAY
    if days_since_review <= 0:
        return 1.0

    stability = card.interval * card.ease_factor
    if stability <= 0:
        return 0.0

    retention = math.exp(-days_since_review / stability)
    return round_half_up(min(1.0, max(0.0, retention)), 2)


def mastery_stats(cards: Sequence[Card]) -> MasteryStats:
    """
    Summarize how much of a collection has matured (interval > 21 days).

    average_time_to_mastery is a heuristic (mean repetitions * 1.5) over mature
    cards with at least one successful repetition; None when there are none.
    """
    total = len(cards)
    mature = [c for c in cards if is_mature(c)]
    percentage = (len(mature) / total) * 100 if total > 0 else 0.0

    mastered = [c for c in mature if c.repetitions > 0]
    average_time_to_mastery = None
    if mastered:
        mean_repetitions = sum(c.repetitions for c in mastered) / len(mastered)
        average_time_to_mastery = int(round_half_up(mean_repetitions * MASTERY_REPETITION_DAYS))

    return MasteryStats(
        mature_cards=len(mature),
        total_cards=total,
        mastery_percentage=round_half_up(percentage, 1),
        average_time_to_mastery=average_time_to_mastery,
    )


def forecast_schedule(
    cards: Sequence[Card],
    days: int = DEFAULT_FORECAST_DAYS,
    now: datetime | None = None,
) -> list[ForecastDay]:
    """
    Project workload for the next `days` UTC calendar days, starting today.

    Each card counts toward the day its next_review falls on; overdue cards
    from earlier days are not rolled forward.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    today = _utc_date(now)

    buckets: dict[str, list[Card]] = {}
    for card in cards:
        buckets.setdefault(_utc_date(card.next_review).isoformat(), []).append(card)

    schedule: list[ForecastDay] = []
    for offset in range(max(0, days)):
        day = (today + timedelta(days=offset)).isoformat()
        due = buckets.get(day, [])
        new_count = sum(1 for c in due if c.repetitions == 0)
        schedule.append(
            ForecastDay(
                date=day,
                due_count=len(due),
                new_count=new_count,
                review_count=len(due) - new_count,
            )
        )
    return schedule


def _utc_date(moment: datetime):
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()
