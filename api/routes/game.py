"""Game API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from api.schemas import (
    CreateGameRequest,
    CreateGameResponse,
    DealRequest,
    GameResponse,
    PlayerActionRequest,
)
from api.service import GameService, get_game_service

router = APIRouter()

Service = Annotated[GameService, Depends(get_game_service)]


@router.post("/")
async def create_game(request: CreateGameRequest, service: Service) -> CreateGameResponse:
    """Open a new table."""
    try:
        game_id = await service.create(request.name, request.players)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return CreateGameResponse(id=game_id)


@router.get("/{game_id}")
async def get_game(game_id: int, service: Service) -> GameResponse:
    """Get the current table state."""
    return GameResponse.from_session(await service.get_by_id(game_id))


@router.post("/{game_id}/deal")
async def deal_round(
    game_id: int,
    service: Service,
    request: DealRequest | None = None,
) -> GameResponse:
    """Deal the opening cards."""
    players = request.players if request else None
    return GameResponse.from_session(await service.deal_round(game_id, players))


@router.post("/{game_id}/hit")
async def hit(game_id: int, request: PlayerActionRequest, service: Service) -> GameResponse:
    """Deal one more card to a player."""
    return GameResponse.from_session(await service.hit(game_id, request.player))


@router.post("/{game_id}/stand")
async def stand(game_id: int, request: PlayerActionRequest, service: Service) -> GameResponse:
    """Stand a player."""
    return GameResponse.from_session(await service.stand(game_id, request.player))


@router.post("/{game_id}/reveal")
async def reveal_dealer(game_id: int, service: Service) -> GameResponse:
    """Reveal the dealer's hole card."""
    return GameResponse.from_session(await service.reveal_dealer(game_id))
