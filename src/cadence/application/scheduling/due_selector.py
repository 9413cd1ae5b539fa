"""
Due-set selection for review sessions.

Stateless and re-entrant: selection depends only on the cards passed in and
the current time.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from cadence.domain.constants import DEFAULT_SESSION_LIMIT
from cadence.domain.scheduling.models import Card, ReviewSession

logger = logging.getLogger(__name__)


def is_due(card: Card, now: datetime) -> bool:
    return card.next_review <= now


def select_session(
    cards: Iterable[Card],
    now: datetime | None = None,
    limit: int = DEFAULT_SESSION_LIMIT,
    deck_id: str | None = None,
) -> list[Card]:
    """
    Pick the cards to show in the next session.

    Most overdue first; among equally overdue cards, harder ones first.
    The limit is a hard cap. Cards beyond it stay due for the next session.

    Args:
        cards: The card population to choose from.
        now: Reference time (defaults to the current UTC time).
        limit: Maximum number of cards to return. <= 0 returns nothing.
        deck_id: If given, only cards in this deck are considered.

    Returns:
        The ordered, truncated due-set (possibly empty).
    """
    if limit <= 0:
        return []
    if now is None:
        now = datetime.now(timezone.utc)

    due = [
        card
        for card in cards
        if (deck_id is None or card.deck_id == deck_id) and is_due(card, now)
    ]
    # Two stable passes: the tie-break first, then the primary key
    due.sort(key=lambda c: c.difficulty, reverse=True)
    due.sort(key=lambda c: c.next_review)

    if len(due) > limit:
        logger.debug(f"{len(due)} cards due, truncating session to {limit}")
    return due[:limit]


def start_session(
    cards: Iterable[Card],
    now: datetime | None = None,
    limit: int = DEFAULT_SESSION_LIMIT,
    deck_id: str | None = None,
) -> ReviewSession:
    """
    Select a due-set and wrap it in a fresh session with zeroed stats.
    """
    selected = select_session(cards, now=now, limit=limit, deck_id=deck_id)
    return ReviewSession(cards=selected, deck_id=deck_id)
