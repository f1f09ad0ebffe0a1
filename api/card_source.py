"""Card shoe providers: deckofcardsapi.com and an in-process shoe."""

import logging
from abc import ABC, abstractmethod
from random import Random
from typing import Any
from uuid import uuid4

import httpx

from config import config
from core.cards import RANKS, Card, CardImages, Suit, card_code, normalize_rank
from core.exceptions import AdapterFailure

logger = logging.getLogger(__name__)


class CardSource(ABC):
    """Abstract shuffled-shoe provider."""

    @abstractmethod
    async def new_shoe(self, deck_count: int) -> str:
        """Create and shuffle a shoe, returning its id."""
        ...

    @abstractmethod
    async def draw(self, shoe_id: str, count: int) -> list[Card]:
        """
        Draw cards from a shoe in order.

        Raises:
            AdapterFailure: If the shoe is unknown, exhausted or unreachable
        """
        ...

    async def aclose(self) -> None:
        """Release any held resources."""


class DeckOfCardsSource(CardSource):
    """Shoes hosted by the deckofcardsapi.com HTTP API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. https://www.deckofcardsapi.com/api
            timeout: Request timeout in seconds
            client: Preconfigured client (its base_url is used as is)
        """
        self._client = client or httpx.AsyncClient(
            base_url=base_url or config.cards.base_url,
            timeout=timeout or config.cards.timeout,
        )

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise AdapterFailure(f"Deck API request failed: {exc}") from exc
        except ValueError as exc:
            raise AdapterFailure("Deck API returned invalid JSON") from exc

        if not isinstance(data, dict) or not data.get("success"):
            error = data.get("error") if isinstance(data, dict) else None
            raise AdapterFailure(f"Deck API call was unsuccessful: {error or data!r}")
        return data

    async def new_shoe(self, deck_count: int) -> str:
        """Create a shuffled shoe of `deck_count` decks."""
        data = await self._get("/deck/new/shuffle/", {"deck_count": deck_count})
        shoe_id = data.get("deck_id")
        if not shoe_id:
            raise AdapterFailure("Deck API response has no deck_id")
        logger.info("Created shoe %s with %d decks", shoe_id, deck_count)
        return str(shoe_id)

    async def draw(self, shoe_id: str, count: int) -> list[Card]:
        """Draw `count` cards from the shoe."""
        data = await self._get(f"/deck/{shoe_id}/draw/", {"count": count})
        try:
            cards = [_parse_card(c) for c in data["cards"]]
        except (KeyError, TypeError, AttributeError) as exc:
            raise AdapterFailure(f"Malformed card in Deck API response: {exc}") from exc

        if len(cards) != count:
            raise AdapterFailure(f"Requested {count} cards from shoe {shoe_id}, got {len(cards)}")
        return cards

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


def _parse_card(data: dict[str, Any]) -> Card:
    """Convert one Deck API card object into a Card."""
    images = data.get("images") or {}
    return Card(
        code=data["code"],
        rank=normalize_rank(data["value"]),
        suit=data["suit"],
        image=data.get("image", ""),
        images=CardImages(svg=images.get("svg", ""), png=images.get("png", "")),
    )


class LocalShoeSource(CardSource):
    """
    Shoes shuffled and held in process.

    Useful for local development and deterministic tests when seeded.
    """

    def __init__(self, rng: Random | None = None) -> None:
        self._rng = rng or Random()
        self._shoes: dict[str, list[Card]] = {}

    async def new_shoe(self, deck_count: int) -> str:
        """Build and shuffle a shoe of `deck_count` standard decks."""
        if deck_count < 1:
            raise ValueError("Shoe must have at least 1 deck")

        cards = [
            Card.from_code(card_code(rank, suit))
            for _ in range(deck_count)
            for suit in Suit
            for rank in RANKS
        ]
        self._rng.shuffle(cards)
        shoe_id = uuid4().hex[:12]
        self._shoes[shoe_id] = cards
        return shoe_id

    async def draw(self, shoe_id: str, count: int) -> list[Card]:
        """Draw from the top of the shoe."""
        cards = self._shoes.get(shoe_id)
        if cards is None:
            raise AdapterFailure(f"Unknown shoe: {shoe_id}")
        if count > len(cards):
            raise AdapterFailure(
                f"Not enough cards remaining in shoe {shoe_id}: {len(cards)} left"
            )
        drawn, self._shoes[shoe_id] = cards[:count], cards[count:]
        return drawn

    def remaining(self, shoe_id: str) -> int:
        """Return the number of cards left in a shoe."""
        return len(self._shoes.get(shoe_id, []))


# Global card source instance
_card_source: CardSource | None = None


def get_card_source() -> CardSource:
    """Get or create the configured card source."""
    global _card_source
    if _card_source is None:
        if config.cards.source == "local":
            _card_source = LocalShoeSource()
        else:
            _card_source = DeckOfCardsSource()
    return _card_source


async def close_card_source() -> None:
    """Close and forget the card source."""
    global _card_source
    if _card_source is not None:
        await _card_source.aclose()
        _card_source = None
