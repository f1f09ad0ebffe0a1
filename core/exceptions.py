"""Error kinds raised by the table engine and its collaborators."""


class GameError(Exception):
    """Base class for every game-level failure."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(GameError):
    """A session or player lookup had no match."""


class InvalidState(GameError):
    """An operation was attempted outside the phase that allows it."""


class RoundNotComplete(GameError):
    """The dealer was revealed while a player could still act."""


class AdapterFailure(GameError):
    """The external card source was unreachable or answered garbage."""
