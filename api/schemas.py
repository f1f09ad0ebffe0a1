"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, ConfigDict, Field

from core.game.models import GameSession
from core.game.state import GamePhase
from core.hand import is_busted


class CreateGameRequest(BaseModel):
    """Request to open a table."""

    name: str = Field(..., min_length=1, description="Table display name")
    players: list[str] = Field(..., min_length=1, description="Player names in seat order")


class CreateGameResponse(BaseModel):
    """Id of the created table."""

    id: int


class DealRequest(BaseModel):
    """Request to deal the opening cards."""

    players: list[str] | None = Field(
        default=None,
        description="Expected roster in seat order; checked against the table when given",
    )


class PlayerActionRequest(BaseModel):
    """Request for a hit or a stand."""

    player: str = Field(..., description="Name of the acting player")


class CardImagesResponse(BaseModel):
    """Card image renditions."""

    model_config = ConfigDict(from_attributes=True)

    svg: str
    png: str


class CardResponse(BaseModel):
    """Card representation; face-down cards carry 'XX' placeholders."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    rank: str
    suit: str
    image: str
    images: CardImagesResponse
    visible: bool


class PlayerResponse(BaseModel):
    """Player representation."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    is_dealer: bool
    hand: list[CardResponse]
    total: int
    standing: bool
    is_busted: bool


class GameResponse(BaseModel):
    """Projected table state."""

    id: int
    name: str
    dealt: bool
    phase: str
    players: list[PlayerResponse]
    can_reveal: bool

    @classmethod
    def from_session(cls, session: GameSession) -> "GameResponse":
        """Build a response from an already projected session."""
        phase = session.phase
        return cls(
            id=session.id,
            name=session.name,
            dealt=session.dealt,
            phase=phase.name,
            players=[
                PlayerResponse(
                    name=p.name,
                    is_dealer=p.is_dealer,
                    hand=[CardResponse.model_validate(c) for c in p.hand],
                    total=p.total,
                    standing=p.standing,
                    is_busted=is_busted(p.total),
                )
                for p in session.players
            ],
            can_reveal=phase == GamePhase.DEALT
            and all(p.standing or is_busted(p.total) for p in session.seated_players),
        )
