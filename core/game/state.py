"""Round phase enumeration."""

from enum import Enum, auto


class GamePhase(Enum):
    """
    Round phases of a table.

    Flow: CREATED → DEALT → REVEALED
    """

    # Seats taken, no cards yet
    CREATED = auto()

    # Cards out, dealer hole card hidden, players acting
    DEALT = auto()

    # Dealer hole card shown; nothing further is modeled
    REVEALED = auto()

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()


# Valid phase transitions
VALID_TRANSITIONS: dict[GamePhase, list[GamePhase]] = {
    GamePhase.CREATED: [GamePhase.DEALT],
    GamePhase.DEALT: [GamePhase.REVEALED],
    GamePhase.REVEALED: [],  # Terminal state
}

# Machine trigger that enters each phase
PHASE_TRIGGERS: dict[GamePhase, str] = {
    GamePhase.DEALT: "deal",
    GamePhase.REVEALED: "reveal",
}


def is_valid_transition(from_phase: GamePhase, to_phase: GamePhase) -> bool:
    """
    Check if a phase transition is valid.

    Args:
        from_phase: Current phase
        to_phase: Desired phase

    Returns:
        True if the transition is allowed
    """
    return to_phase in VALID_TRANSITIONS.get(from_phase, [])
