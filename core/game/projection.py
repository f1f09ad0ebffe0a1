"""Caller-facing views of a session with face-down cards masked."""

from dataclasses import replace

from core.cards import CARD_BACK_IMAGE, Card, CardImages
from core.game.models import GameSession, Player

HIDDEN = "XX"


def project_card(card: Card) -> Card:
    """Replace the identity of a face-down card with the card back."""
    if card.visible:
        return card
    return Card(
        code=HIDDEN,
        rank=HIDDEN,
        suit=HIDDEN,
        image=CARD_BACK_IMAGE,
        images=CardImages(svg=CARD_BACK_IMAGE, png=CARD_BACK_IMAGE),
        visible=False,
    )


def project_player(player: Player) -> Player:
    """Project every card in a player's hand. The total is left as is."""
    return replace(player, hand=[project_card(c) for c in player.hand])


def project_session(session: GameSession) -> GameSession:
    """
    Build the view of a session that may be shown to any caller.

    Returns a new session; the input is not modified. Projecting an
    already projected session gives the same result.
    """
    return replace(session, players=[project_player(p) for p in session.players])
