"""
YAML Snapshot Ledger: loads and dumps a whole ledger as one YAML document.

The document has three top-level lists: decks, cards and reviews. Loading
fills an InMemoryCardLedger; dump() writes its current contents back.
"""

import logging
from collections.abc import Hashable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
import yaml.constructor
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cadence.domain.constants import (
    DEFAULT_DIFFICULTY,
    DEFAULT_EASE_FACTOR,
    DEFAULT_NEW_CARDS_PER_DAY,
    DEFAULT_REVIEW_LIMIT,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    PASSING_RATING,
)
from cadence.domain.errors import SnapshotError
from cadence.domain.scheduling.models import Card, Deck, ReviewEvent

from .memory_ledger import InMemoryCardLedger

logger = logging.getLogger(__name__)

LINE_KEY = "__line__"


class SnapshotLoader(yaml.SafeLoader):
    """
    SafeLoader that rejects repeated mapping keys and tags every mapping
    with the 1-based line it starts on (under LINE_KEY).
    """

    def construct_mapping(self, node, deep=False):
        first_seen: dict[Any, int] = {}
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                # SafeLoader reports unhashable keys itself
                continue
            line = key_node.start_mark.line + 1
            if key in first_seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key '{key}' (first set on line {first_seen[key]})",
                    key_node.start_mark,
                )
            first_seen[key] = line

        mapping = super().construct_mapping(node, deep=deep)
        mapping[LINE_KEY] = node.start_mark.line + 1
        return mapping


def _as_utc(v: Any) -> Any:
    # PyYAML hands back naive datetimes for unquoted timestamps; treat them as UTC
    if isinstance(v, str):
        v = datetime.fromisoformat(v.replace("Z", "+00:00"))
    if isinstance(v, datetime) and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class DeckRecord(_Record):
    id: str
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    new_cards_per_day: int = DEFAULT_NEW_CARDS_PER_DAY
    review_limit: int = DEFAULT_REVIEW_LIMIT
    total_cards: int = 0
    mature_cards: int = 0

    def to_domain(self) -> Deck:
        return Deck(**self.model_dump())

    @classmethod
    def from_domain(cls, deck: Deck) -> "DeckRecord":
        return cls(**vars(deck))


class CardRecord(_Record):
    id: str
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    context: str | None = None
    deck_id: str | None = None
    meeting_id: str | None = None
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0
    next_review: datetime
    last_reviewed: datetime | None = None
    times_reviewed: int = 0
    times_correct: int = 0
    average_time: float | None = None
    difficulty: int = Field(default=DEFAULT_DIFFICULTY, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)

    @field_validator("next_review", "last_reviewed", mode="before")
    @classmethod
    def ensure_utc(cls, v: Any) -> Any:
        return _as_utc(v)

    def to_domain(self) -> Card:
        return Card(**self.model_dump())

    @classmethod
    def from_domain(cls, card: Card) -> "CardRecord":
        return cls(**vars(card))


class ReviewRecord(_Record):
    card_id: str
    rating: int = Field(ge=0, le=5)
    time_spent: float = Field(gt=0)
    was_correct: bool | None = None
    previous_interval: int = 0
    previous_ease: float = DEFAULT_EASE_FACTOR
    reviewed_at: datetime

    @field_validator("reviewed_at", mode="before")
    @classmethod
    def ensure_utc(cls, v: Any) -> Any:
        return _as_utc(v)

    def to_domain(self) -> ReviewEvent:
        data = self.model_dump()
        if data["was_correct"] is None:
            data["was_correct"] = self.rating >= PASSING_RATING
        return ReviewEvent(**data)

    @classmethod
    def from_domain(cls, event: ReviewEvent) -> "ReviewRecord":
        return cls(**vars(event))


class YamlSnapshotLedger(InMemoryCardLedger):
    """
    In-memory ledger seeded from, and dumpable to, a YAML snapshot file.
    """

    def __init__(self, path: Path, **kwargs: Any):
        super().__init__(**kwargs)
        self.path = path

    @classmethod
    def load(cls, path: Path) -> "YamlSnapshotLedger":
        """
        Read a snapshot. A missing file yields an empty ledger.

        Records that fail validation are skipped with a warning.

        Raises:
            SnapshotError: If the file is not valid YAML or not a mapping.
        """
        if not path.exists():
            logger.info(f"No snapshot at {path}; starting with an empty ledger")
            return cls(path)

        try:
            raw = yaml.load(path.read_text(encoding="utf-8"), Loader=SnapshotLoader) or {}
        except yaml.YAMLError as e:
            raise SnapshotError(f"Could not parse {path}: {e}") from e

        if not isinstance(raw, dict):
            raise SnapshotError(f"{path} must contain a mapping with decks, cards and reviews")

        decks = _parse_section(raw, "decks", DeckRecord, path)
        cards = _parse_section(raw, "cards", CardRecord, path)
        reviews = _parse_section(raw, "reviews", ReviewRecord, path)

        logger.debug(
            f"Loaded {len(cards)} cards, {len(decks)} decks, {len(reviews)} reviews from {path}"
        )
        return cls(path, cards=cards, decks=decks, reviews=reviews)

    def dump(self) -> None:
        """Write the ledger's current contents back to its snapshot file."""
        document = {
            "decks": [
                DeckRecord.from_domain(d).model_dump(mode="json") for d in self._decks.values()
            ],
            "cards": [
                CardRecord.from_domain(c).model_dump(mode="json") for c in self._cards.values()
            ],
            "reviews": [
                ReviewRecord.from_domain(e).model_dump(mode="json") for e in self._reviews
            ],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(document, sort_keys=False, allow_unicode=True), encoding="utf-8"
        )
        logger.info(f"Wrote snapshot to {self.path}")


def _parse_section(raw: dict, key: str, record_cls: type[_Record], path: Path) -> list:
    entries = raw.get(key) or []
    if not isinstance(entries, list):
        raise SnapshotError(f"'{key}' in {path} must be a list")

    parsed = []
    for entry in entries:
        line = entry.get(LINE_KEY, "?") if isinstance(entry, dict) else "?"
        try:
            parsed.append(record_cls.model_validate(entry).to_domain())
        except (ValidationError, ValueError) as e:
            logger.warning(f"Skipping {key} entry at {path}:{line}: {e}")
    return parsed
