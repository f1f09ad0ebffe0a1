"""Session and player records with their persisted dict form."""

from dataclasses import dataclass, field
from typing import Any

from core.cards import Card
from core.game.state import GamePhase
from core.hand import hand_total, is_busted


@dataclass
class Player:
    """A seat at the table. The dealer is a player with `is_dealer` set."""

    name: str
    is_dealer: bool = False
    hand: list[Card] = field(default_factory=list)
    total: int = 0
    standing: bool = False

    @property
    def is_busted(self) -> bool:
        """Check if the hand total is over 21."""
        return is_busted(self.total)

    @property
    def is_done(self) -> bool:
        """Check if the player can take no further action this round."""
        return self.standing or self.is_busted

    def add_card(self, card: Card) -> None:
        """Append a card and recompute the total."""
        self.hand.append(card)
        self.total = hand_total(self.hand)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "is_dealer": self.is_dealer,
            "hand": [c.to_dict() for c in self.hand],
            "total": self.total,
            "standing": self.standing,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Player":
        return cls(
            name=data["name"],
            is_dealer=data["is_dealer"],
            hand=[Card.from_dict(c) for c in data["hand"]],
            total=data["total"],
            standing=data["standing"],
        )


@dataclass
class GameSession:
    """
    One table and its players.

    The dealer always sits at index 0. The phase is derived from `dealt`
    and the visibility of the dealer's hole card rather than stored.
    """

    id: int
    name: str
    shoe_id: str
    dealt: bool = False
    players: list[Player] = field(default_factory=list)

    @classmethod
    def new(
        cls,
        session_id: int,
        name: str,
        shoe_id: str,
        player_names: list[str],
        dealer_name: str = "Dealer",
    ) -> "GameSession":
        """
        Build a fresh, undealt session.

        Raises:
            ValueError: If the table name or player list is unusable
        """
        if not name.strip():
            raise ValueError("Game name must not be empty")
        if not player_names:
            raise ValueError("At least one player is required")
        if any(not p.strip() for p in player_names):
            raise ValueError("Player names must not be empty")
        if len(set(player_names)) != len(player_names):
            raise ValueError("Player names must be unique")
        if dealer_name in player_names:
            raise ValueError(f"'{dealer_name}' is reserved for the dealer")

        players = [Player(name=dealer_name, is_dealer=True)]
        players.extend(Player(name=p) for p in player_names)
        return cls(id=session_id, name=name, shoe_id=shoe_id, players=players)

    @property
    def dealer(self) -> Player:
        """Return the dealer seat."""
        return self.players[0]

    @property
    def seated_players(self) -> list[Player]:
        """Return every non-dealer player in seat order."""
        return self.players[1:]

    @property
    def phase(self) -> GamePhase:
        """Derive the round phase from the stored flags."""
        if not self.dealt:
            return GamePhase.CREATED
        hand = self.dealer.hand
        if hand and not hand[0].visible:
            return GamePhase.DEALT
        return GamePhase.REVEALED

    def find_player(self, name: str) -> Player | None:
        """Look up a player by exact name."""
        for player in self.players:
            if player.name == name:
                return player
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "id": self.id,
            "name": self.name,
            "shoe_id": self.shoe_id,
            "dealt": self.dealt,
            "players": [p.to_dict() for p in self.players],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameSession":
        """Restore a session saved with `to_dict`."""
        return cls(
            id=int(data["id"]),
            name=data["name"],
            shoe_id=data["shoe_id"],
            dealt=data["dealt"],
            players=[Player.from_dict(p) for p in data["players"]],
        )
