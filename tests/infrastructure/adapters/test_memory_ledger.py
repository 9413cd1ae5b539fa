import asyncio
from datetime import timedelta

import pytest

from cadence.domain.errors import CardNotFoundError, DeckNotFoundError
from cadence.domain.scheduling.models import Deck
from cadence.infrastructure.adapters.ledger import InMemoryCardLedger


@pytest.mark.asyncio
async def test_round_trip_card_and_deck(make_card):
    ledger = InMemoryCardLedger()
    await ledger.save_card(make_card("a", deck_id="d1"))
    await ledger.save_deck(Deck(id="d1", name="Planning"))

    assert (await ledger.get_card("a")).deck_id == "d1"
    assert (await ledger.get_deck("d1")).name == "Planning"
    assert [d.id for d in await ledger.list_decks()] == ["d1"]


@pytest.mark.asyncio
async def test_missing_entities_raise():
    ledger = InMemoryCardLedger()

    with pytest.raises(CardNotFoundError, match="ghost"):
        await ledger.get_card("ghost")
    with pytest.raises(DeckNotFoundError):
        await ledger.get_deck("ghost")


@pytest.mark.asyncio
async def test_returned_cards_are_copies(make_card):
    original = make_card("a")
    ledger = InMemoryCardLedger(cards=[original])

    fetched = await ledger.get_card("a")
    fetched.interval = 99
    original.interval = 42

    assert (await ledger.get_card("a")).interval == 0


@pytest.mark.asyncio
async def test_list_cards_by_deck(make_card):
    ledger = InMemoryCardLedger(
        cards=[make_card("a", deck_id="x"), make_card("b", deck_id="y"), make_card("c")]
    )

    assert {c.id for c in await ledger.list_cards()} == {"a", "b", "c"}
    assert [c.id for c in await ledger.list_cards("y")] == ["b"]


@pytest.mark.asyncio
async def test_history_is_chronological_even_when_appended_out_of_order(make_event, now):
    ledger = InMemoryCardLedger()
    late = make_event("a", reviewed_at=now)
    early = make_event("a", reviewed_at=now - timedelta(days=1))
    other = make_event("b", reviewed_at=now - timedelta(hours=1))

    for event in (late, other, early):
        await ledger.append_review(event)

    assert await ledger.get_review_history("a") == [early, late]
    assert ledger.all_reviews() == [early, other, late]


@pytest.mark.asyncio
async def test_recent_reviews_newest_first_with_filters(make_event, now):
    events = [make_event(f"c{i}", reviewed_at=now - timedelta(hours=i)) for i in range(5)]
    ledger = InMemoryCardLedger(reviews=events)

    recent = await ledger.get_recent_reviews()
    assert [e.card_id for e in recent] == ["c0", "c1", "c2", "c3", "c4"]

    assert len(await ledger.get_recent_reviews(limit=2)) == 2
    assert await ledger.get_recent_reviews(limit=0) == []

    since = await ledger.get_recent_reviews(since=now - timedelta(hours=2))
    assert [e.card_id for e in since] == ["c0", "c1", "c2"]


@pytest.mark.asyncio
async def test_lock_is_per_card():
    ledger = InMemoryCardLedger()

    assert ledger.lock_card("a") is ledger.lock_card("a")
    assert ledger.lock_card("a") is not ledger.lock_card("b")

    async with ledger.lock_card("a"):
        # Another card stays available while "a" is held
        await asyncio.wait_for(ledger.lock_card("b").acquire(), timeout=1)
        ledger.lock_card("b").release()
