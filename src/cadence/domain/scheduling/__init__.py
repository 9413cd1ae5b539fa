# Domain Scheduling Package
from .models import (
    Card,
    Deck,
    ForecastDay,
    MasteryStats,
    MaturityCrossed,
    NextState,
    ReviewEvent,
    ReviewOutcome,
    ReviewSession,
    ReviewTally,
    SessionStats,
    StudyStats,
)
from .ports import CardLedger

__all__ = [
    "Card",
    "Deck",
    "ReviewEvent",
    "NextState",
    "MaturityCrossed",
    "ReviewOutcome",
    "ReviewSession",
    "ReviewTally",
    "SessionStats",
    "StudyStats",
    "MasteryStats",
    "ForecastDay",
    "CardLedger",
]
