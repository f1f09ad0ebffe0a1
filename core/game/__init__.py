"""Table engine, session model and state management."""

from core.game.events import GameEvent, EventType
from core.game.state import GamePhase
from core.game.models import GameSession, Player
from core.game.engine import BlackjackTable
from core.game.projection import project_session

__all__ = [
    "GameEvent",
    "EventType",
    "GamePhase",
    "GameSession",
    "Player",
    "BlackjackTable",
    "project_session",
]
