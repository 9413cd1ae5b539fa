"""
SM-2 interval scheduler.

Pure computation with no I/O: given a card's scheduling state and a rating,
derive the next state. Persisting the result is the caller's job.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Protocol

from cadence.domain.constants import (
    FIRST_SUCCESS_INTERVAL,
    LAPSE_INTERVAL,
    MATURE_INTERVAL_DAYS,
    MAX_INTERVAL_DAYS,
    MAX_RATING,
    MIN_EASE_FACTOR,
    MIN_RATING,
    PASSING_RATING,
    SECOND_SUCCESS_INTERVAL,
)
from cadence.domain.errors import InvalidCardStateError
from cadence.domain.scheduling.models import (
    Card,
    Deck,
    MaturityCrossed,
    NextState,
    ReviewEvent,
    ReviewOutcome,
    ReviewTally,
)

logger = logging.getLogger(__name__)


class SchedulingState(Protocol):
    ease_factor: float
    interval: int
    repetitions: int


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a calculator does: .5 always goes up."""
    scale = 10**ndigits
    return math.floor(value * scale + 0.5) / scale


def clamp_rating(rating: float) -> int:
    """
    Coerce a rating into [0, 5]. Malformed ratings are clamped, never rejected.
    """
    if isinstance(rating, float) and math.isnan(rating):
        return MIN_RATING
    if isinstance(rating, float) and math.isinf(rating):
        return MAX_RATING if rating > 0 else MIN_RATING
    return max(MIN_RATING, min(MAX_RATING, int(round_half_up(rating))))


def validate_card_state(card: SchedulingState) -> None:
    """
    Reject scheduling state that no sequence of reviews could have produced.

    Raises:
        InvalidCardStateError: On a negative or over-cap interval, negative
            repetitions, an unseen interval with successful repetitions, or an
            ease factor below the floor.
    """
    card_id = getattr(card, "id", None)

    if not math.isfinite(card.ease_factor):
        raise InvalidCardStateError(card_id, f"ease_factor is {card.ease_factor}")
    if card.ease_factor < MIN_EASE_FACTOR:
        raise InvalidCardStateError(
            card_id, f"ease_factor {card.ease_factor} is below {MIN_EASE_FACTOR}"
        )
    if card.interval < 0:
        raise InvalidCardStateError(card_id, f"interval {card.interval} is negative")
    if card.interval > MAX_INTERVAL_DAYS:
        raise InvalidCardStateError(
            card_id, f"interval {card.interval} exceeds {MAX_INTERVAL_DAYS} days"
        )
    if card.repetitions < 0:
        raise InvalidCardStateError(card_id, f"repetitions {card.repetitions} is negative")
    if card.interval == 0 and card.repetitions > 0:
        # Any success sets interval >= 1; this state would never grow again
        raise InvalidCardStateError(
            card_id, f"interval 0 with {card.repetitions} repetitions is unreachable"
        )


def next_ease_factor(ease_factor: float, rating: int) -> float:
    """
    SM-2 ease update, floored at 1.3. Returned at full precision.
    """
    miss = MAX_RATING - rating
    updated = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return max(MIN_EASE_FACTOR, updated)


def compute_next_state(
    card: SchedulingState,
    rating: float,
    now: datetime | None = None,
) -> NextState:
    """
    Compute a card's next scheduling state from a recall rating.

    Args:
        card: Anything carrying ease_factor, interval and repetitions.
        rating: Recall quality 0-5. Out-of-range values are clamped.
        now: Review instant (defaults to the current UTC time).

    Returns:
        NextState with the new interval, ease, repetitions and due date.

    Raises:
        InvalidCardStateError: If the incoming state is corrupted.
    """
    validate_card_state(card)
    q = clamp_rating(rating)
    if now is None:
        now = datetime.now(timezone.utc)

    if q < PASSING_RATING:
        new_repetitions = 0
        new_interval = LAPSE_INTERVAL
    else:
        new_repetitions = card.repetitions + 1
        if new_repetitions == 1:
            new_interval = FIRST_SUCCESS_INTERVAL
        elif new_repetitions == 2:
            new_interval = SECOND_SUCCESS_INTERVAL
        else:
            # Growth uses the ease factor the card had going into this review
            new_interval = int(round_half_up(card.interval * card.ease_factor))

    new_interval = min(MAX_INTERVAL_DAYS, new_interval)
    new_ease = next_ease_factor(card.ease_factor, q)

    logger.debug(
        f"rating={q} reps {card.repetitions}->{new_repetitions} "
        f"interval {card.interval}->{new_interval} ease {card.ease_factor}->{new_ease:.4f}"
    )

    return NextState(
        next_review_at=now + timedelta(days=new_interval),
        new_interval=new_interval,
        new_ease_factor=round_half_up(new_ease, 2),
        new_repetitions=new_repetitions,
    )


def crossed_maturity(previous_interval: int, new_interval: int) -> bool:
    return new_interval > MATURE_INTERVAL_DAYS and previous_interval <= MATURE_INTERVAL_DAYS


def fold_review_history(
    events: Iterable[ReviewEvent], start: ReviewTally | None = None
) -> ReviewTally:
    """
    Replay review events into lifetime counters.
    """
    tally = start or ReviewTally()
    for event in events:
        tally = tally.add(event)
    return tally


def review_card(
    card: Card,
    rating: float,
    time_spent: float,
    history: Iterable[ReviewEvent] | None = None,
    now: datetime | None = None,
) -> ReviewOutcome:
    """
    Apply one review submission to a card.

    Args:
        card: The card as currently stored.
        rating: Recall quality 0-5 (clamped).
        time_spent: Seconds spent on the card. Must be positive.
        history: The card's previous review events. When given, lifetime
            counters are rebuilt from it; otherwise the card's stored counters
            are used as the starting point.
        now: Review instant (defaults to the current UTC time).

    Returns:
        ReviewOutcome with the updated card, the event to append and, if the
        card just became mature, a MaturityCrossed event for the owning deck.
    """
    if not time_spent > 0:
        raise ValueError(f"time_spent must be positive, got {time_spent}")
    if now is None:
        now = datetime.now(timezone.utc)

    q = clamp_rating(rating)
    state = compute_next_state(card, q, now)

    event = ReviewEvent(
        card_id=card.id,
        rating=q,
        time_spent=float(time_spent),
        was_correct=q >= PASSING_RATING,
        previous_interval=card.interval,
        previous_ease=card.ease_factor,
        reviewed_at=now,
    )

    if history is not None:
        tally = fold_review_history([*history, event])
    else:
        seed = ReviewTally(
            times_reviewed=card.times_reviewed,
            times_correct=card.times_correct,
            average_time=card.average_time,
        )
        tally = seed.add(event)

    updated = replace(
        card,
        ease_factor=state.new_ease_factor,
        interval=state.new_interval,
        repetitions=state.new_repetitions,
        next_review=state.next_review_at,
        last_reviewed=now,
        times_reviewed=tally.times_reviewed,
        times_correct=tally.times_correct,
        average_time=tally.average_time,
    )

    maturity = None
    if crossed_maturity(card.interval, state.new_interval):
        maturity = MaturityCrossed(
            card_id=card.id, deck_id=card.deck_id, interval=state.new_interval
        )

    return ReviewOutcome(card=updated, event=event, maturity=maturity)


def apply_maturity(deck: Deck, event: MaturityCrossed) -> Deck:
    """
    Count a maturity crossing against its deck.

    Lapses never decrement the counter: mature_cards records cards that have
    matured at least once.
    """
    if event.deck_id != deck.id:
        raise ValueError(f"MaturityCrossed for deck {event.deck_id} applied to deck {deck.id}")
    return replace(deck, mature_cards=deck.mature_cards + 1)
