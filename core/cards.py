"""Card value objects and the fixed blackjack valuation."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


# Long value names used by deckofcardsapi.com
_RANK_ALIASES = {
    "ACE": "A",
    "KING": "K",
    "QUEEN": "Q",
    "JACK": "J",
}

RANKS = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")

CARD_BACK_IMAGE = "https://www.deckofcardsapi.com/static/img/back.png"
CARD_IMAGE_BASE = "https://deckofcardsapi.com/static/img"


class Suit(Enum):
    """Card suits, named the way the deck provider names them."""

    CLUBS = "CLUBS"
    DIAMONDS = "DIAMONDS"
    HEARTS = "HEARTS"
    SPADES = "SPADES"

    def __str__(self) -> str:
        symbols = {
            Suit.CLUBS: "♣",
            Suit.DIAMONDS: "♦",
            Suit.HEARTS: "♥",
            Suit.SPADES: "♠",
        }
        return symbols[self]

    @property
    def letter(self) -> str:
        """Single-letter suit code used in card codes."""
        return self.value[0]


def normalize_rank(value: str) -> str:
    """Map a provider value ('ACE', 'KING', '10') to a short rank."""
    value = value.strip().upper()
    return _RANK_ALIASES.get(value, value)


def card_value(rank: str) -> int:
    """
    Return the point value of a rank.

    Numeric ranks count at face value (a literal "1" counts as 1), every
    other rank counts 10. Aces are always 10.
    """
    if rank.isdigit():
        return int(rank)
    return 10


@dataclass(frozen=True, slots=True)
class CardImages:
    """Alternate image renditions of a card."""

    svg: str
    png: str


@dataclass(frozen=True, slots=True)
class Card:
    """A drawn card. Only `visible` ever changes, via `with_visibility`."""

    code: str
    rank: str
    suit: str
    image: str = ""
    images: CardImages = field(default_factory=lambda: CardImages("", ""))
    visible: bool = True

    def __str__(self) -> str:
        return self.code if self.visible else "??"

    @property
    def value(self) -> int:
        """Return the fixed point value of this card."""
        return card_value(self.rank)

    def with_visibility(self, visible: bool) -> "Card":
        """Return the same card with its visibility replaced."""
        return replace(self, visible=visible)

    @classmethod
    def from_code(cls, code: str, visible: bool = True) -> "Card":
        """Create a card from a provider code like 'AS', '0H', 'KD'."""
        code = code.strip().upper()
        if len(code) != 2:
            raise ValueError(f"Invalid card code: {code}")

        rank_str, suit_letter = code[0], code[1]
        rank = "10" if rank_str == "0" else rank_str
        if rank not in RANKS:
            raise ValueError(f"Invalid rank: {rank_str}")

        suits = {s.letter: s for s in Suit}
        if suit_letter not in suits:
            raise ValueError(f"Invalid suit: {suit_letter}")

        return cls(
            code=code,
            rank=rank,
            suit=suits[suit_letter].value,
            image=f"{CARD_IMAGE_BASE}/{code}.png",
            images=CardImages(
                svg=f"{CARD_IMAGE_BASE}/{code}.svg",
                png=f"{CARD_IMAGE_BASE}/{code}.png",
            ),
            visible=visible,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "code": self.code,
            "rank": self.rank,
            "suit": self.suit,
            "image": self.image,
            "images": {"svg": self.images.svg, "png": self.images.png},
            "visible": self.visible,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Card":
        """Deserialize from a dict produced by `to_dict`."""
        images = data.get("images") or {}
        return cls(
            code=data["code"],
            rank=data["rank"],
            suit=data["suit"],
            image=data.get("image", ""),
            images=CardImages(svg=images.get("svg", ""), png=images.get("png", "")),
            visible=data.get("visible", True),
        )


def card_code(rank: str, suit: Suit) -> str:
    """Build the provider card code; the ten is written '0'."""
    return f"{'0' if rank == '10' else rank}{suit.letter}"
