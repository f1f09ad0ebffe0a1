"""Pytest fixtures for blackjack table tests."""

import asyncio
from random import Random

import pytest
from hypothesis import strategies as st

from api.card_source import CardSource, LocalShoeSource
from api.service import GameService
from api.session import InMemorySessionStore
from core.cards import RANKS, Card, Suit, card_code
from core.exceptions import AdapterFailure
from core.game.engine import BlackjackTable
from core.game.models import GameSession


def make_card(code: str, visible: bool = True) -> Card:
    """Build a card from a short code like 'KH' or '0S'."""
    return Card.from_code(code, visible=visible)


class ScriptedCardSource(CardSource):
    """Card source that deals a fixed sequence of cards, in order."""

    def __init__(self, codes: list[str]) -> None:
        self._cards = [make_card(c) for c in codes]
        self.draw_calls: list[int] = []
        self.shoes_created = 0

    async def new_shoe(self, deck_count: int) -> str:
        self.shoes_created += 1
        return f"scripted-{self.shoes_created}"

    async def draw(self, shoe_id: str, count: int) -> list[Card]:
        self.draw_calls.append(count)
        if count > len(self._cards):
            raise AdapterFailure("Scripted shoe exhausted")
        drawn, self._cards = self._cards[:count], self._cards[count:]
        return drawn


class SlowCardSource(LocalShoeSource):
    """Local shoe that yields to the event loop before every draw."""

    async def draw(self, shoe_id: str, count: int) -> list[Card]:
        await asyncio.sleep(0.01)
        return await super().draw(shoe_id, count)


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def local_source(rng):
    """An in-process shoe provider."""
    return LocalShoeSource(rng=rng)


@pytest.fixture
def store():
    """A fresh in-memory game store."""
    return InMemorySessionStore()


@pytest.fixture
def service(store, local_source):
    """A game service over in-memory backends."""
    return GameService(store, local_source)


@pytest.fixture
def session():
    """An undealt table with Alice and Bob."""
    return GameSession.new(1, "T1", "shoe-1", ["Alice", "Bob"])


@pytest.fixture
def opening_cards():
    """Six cards in draw order: dealer, Alice, Bob."""
    return [make_card(c) for c in ["KS", "7H", "9C", "8D", "0H", "6S"]]


@pytest.fixture
def dealt_table(session, opening_cards):
    """A table after the opening deal."""
    table = BlackjackTable(session)
    table.deal_round(opening_cards)
    return table


# Hypothesis strategies for property-based testing
@st.composite
def card_strategy(draw, visible=st.booleans()):
    """Generate a random card."""
    rank = draw(st.sampled_from(RANKS))
    suit = draw(st.sampled_from(list(Suit)))
    return make_card(card_code(rank, suit), visible=draw(visible))


@st.composite
def hand_strategy(draw, min_cards=0, max_cards=8):
    """Generate a random list of cards."""
    return draw(st.lists(card_strategy(), min_size=min_cards, max_size=max_cards))
