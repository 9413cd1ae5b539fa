"""Exception hierarchy for the cadence core."""


class CadenceError(Exception):
    """Base class for every error raised by cadence."""


class InvalidCardStateError(CadenceError):
    """
    A card's scheduling state violates its invariants.

    This signals a corrupted upstream ledger record, not a normal edge case.
    """

    def __init__(self, card_id: str | None, reason: str):
        self.card_id = card_id
        self.reason = reason
        label = card_id if card_id is not None else "<unsaved>"
        super().__init__(f"Invalid scheduling state for card {label}: {reason}")


class CardNotFoundError(CadenceError):
    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"Card not found: {card_id}")


class DeckNotFoundError(CadenceError):
    def __init__(self, deck_id: str):
        self.deck_id = deck_id
        super().__init__(f"Deck not found: {deck_id}")


class SnapshotError(CadenceError):
    """A ledger snapshot file could not be read or is malformed."""
