# Application Scheduling Package
from .due_selector import select_session, start_session
from .forecast import estimate_retention, forecast_schedule, mastery_stats
from .interval_scheduler import (
    apply_maturity,
    compute_next_state,
    fold_review_history,
    review_card,
)
from .service import DeckDraft, ReviewService, ReviewSubmission
from .stats_aggregator import compute_study_stats

__all__ = [
    "compute_next_state",
    "review_card",
    "apply_maturity",
    "fold_review_history",
    "select_session",
    "start_session",
    "compute_study_stats",
    "estimate_retention",
    "mastery_stats",
    "forecast_schedule",
    "DeckDraft",
    "ReviewService",
    "ReviewSubmission",
]
