"""Hand totals for the fixed valuation."""

from typing import Iterable

from core.cards import Card

BUST_LIMIT = 21


def hand_total(cards: Iterable[Card]) -> int:
    """Sum the point values of every card, hidden or not."""
    return sum(card.value for card in cards)


def is_busted(total: int) -> bool:
    """Check if a total is over 21."""
    return total > BUST_LIMIT
