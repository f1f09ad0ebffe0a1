"""Core blackjack table rules - transport and storage agnostic."""

from core.cards import Card, CardImages, Suit
from core.exceptions import AdapterFailure, GameError, InvalidState, NotFound, RoundNotComplete

__all__ = [
    "Card",
    "CardImages",
    "Suit",
    "GameError",
    "NotFound",
    "InvalidState",
    "RoundNotComplete",
    "AdapterFailure",
]
